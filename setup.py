# setup.py
from setuptools import setup, find_packages

setup(
    name="codepreview",
    version="0.1.0",
    description="Live source preview: lexical classification and pseudo-execution transcripts",
    packages=find_packages(include=["codepreview", "codepreview.*", "codepreview_lsp", "codepreview_lsp.*"]),
    package_data={"codepreview": ["data/*.json"]},
    python_requires=">=3.9",
    install_requires=[
        "pygls>=1.1,<2",
        "lsprotocol",
    ],
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    entry_points={
        "console_scripts": [
            "codepreview=codepreview.__main__:main",
            "codepreview-ls=codepreview_lsp.server:ls.start_io",
        ],
    },
    zip_safe=False,
)
