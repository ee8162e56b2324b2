from codepreview.reader.classifier import Category, ClassifiedSpan, classify, render_markup

__all__ = ["Category", "ClassifiedSpan", "classify", "render_markup"]
