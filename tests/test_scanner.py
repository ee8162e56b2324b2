import pytest

from codepreview.evaluation.evaluator import DIVISION_BY_ZERO
from codepreview.types import OutputKind, OutputLine, RunOutcome

I, O, W, IN = OutputKind.INFO, OutputKind.OUTPUT, OutputKind.WARNING, OutputKind.INPUT

PY_START = OutputLine(">>> Python Execution Started", I)
PY_END = OutputLine(">>> Execution Completed Successfully", I)


def _lines(result):
    return [(line.text, line.kind) for line in result.lines]


def test_hello_world(run_preview):
    _, result, prompts = run_preview('print("Hello, World!")', "python")
    assert result.outcome is RunOutcome.COMPLETED
    assert result.lines == [PY_START, OutputLine("Hello, World!", O), PY_END]
    assert prompts == []


@pytest.mark.parametrize(
    "source,expected",
    [
        ('print("a", 1, 2.5)', ["a 1 2.5"]),
        ('print("a", "b", sep="-")', ["a-b"]),
        ('print("x", end="")\nprint("y")', ["xy"]),
        ('print("a\\nb")', ["a", "b"]),
        ("print()", [""]),
        ("x = 5\ny = x * 2\nprint(y)", ["10"]),
        ("x = 1\nx += 2\nprint(x)", ["3"]),
        ("# comment\n\nprint(1)  # trailing", ["1"]),
        ('msg = "hi"\nprint(msg.upper())', ["msg.upper()"]),
        ("print(fibonacci(10))", ["fibonacci(10)"]),
        ('print(f"{10 / 0}")', [DIVISION_BY_ZERO]),
        ('print("tail", end="")', ["tail"]),
    ],
)
def test_python_output(source, expected, run_preview):
    _, result, _ = run_preview(source, "python")
    assert result.outcome is RunOutcome.COMPLETED
    assert [line.text for line in result.lines if line.kind is O] == expected


def test_control_flow_bodies_run_once(run_preview):
    source = "\n".join([
        "for i in range(3):",
        '    print(f"Loop {i}")',
        "if True:",
        '    print("yes")',
        "else:",
        '    print("no")',
    ])
    _, result, _ = run_preview(source, "python")
    assert [line.text for line in result.lines if line.kind is O] == ["Loop i", "yes", "no"]


def test_python_input_is_echoed(run_preview):
    source = 'name = input("Enter: ")\nprint(f"Hi {name}")'
    _, result, prompts = run_preview(source, "python", answers=["Ada"])
    assert prompts == ["Enter: "]
    assert _lines(result) == [
        (PY_START.text, I),
        ("Enter: Ada", IN),
        ("Hi Ada", O),
        (PY_END.text, I),
    ]


def test_python_coerced_input(run_preview):
    source = 'age = int(input("Age: "))\nprint(f"Next year: {age + 1}")'
    _, result, _ = run_preview(source, "python", answers=["30"])
    assert [line.text for line in result.lines if line.kind is O] == ["Next year: 31"]
    assert not [line for line in result.lines if line.kind is W]


def test_invalid_numeric_input_warns_and_continues(run_preview):
    source = 'age = int(input("Age: "))\nprint(f"Next year: {age + 1}")'
    _, result, _ = run_preview(source, "python", answers=["abc"])
    assert result.outcome is RunOutcome.COMPLETED
    kinds = [line.kind for line in result.lines]
    assert kinds == [I, IN, W, O, I]
    assert "'abc'" in result.lines[2].text
    assert result.lines[3].text == "Next year: 1"


def test_prompt_from_partial_print(run_preview):
    source = 'print("Your name: ", end="")\nname = input()\nprint("Hi", name)'
    _, result, prompts = run_preview(source, "python", answers=["Bo"])
    assert prompts == ["Your name: "]
    assert [line.text for line in result.lines if line.kind is not I] == ["Your name: Bo", "Hi Bo"]


def test_input_without_prompt(run_preview):
    _, result, prompts = run_preview("x = input()\nprint(x)", "python", answers=["42"])
    assert prompts == [""]
    assert ("42", IN) in _lines(result)


def test_blank_answer_keeps_waiting(run_preview):
    _, result, prompts = run_preview('x = input("? ")\nprint(x)', "python", answers=["  ", "ok"])
    assert prompts == ["? "]
    assert [line.text for line in result.lines if line.kind is O] == ["ok"]


def test_straight_line_transcript(run_preview):
    source = "\n".join([
        'name = input("What is your name: ")',
        'age = int(input("How old are you: "))',
        "for i in range(3):",
        '    print(f"Hello {name}, you are {age} years old. Loop {i+1}")',
    ])
    _, result, prompts = run_preview(source, "python", answers=["Ada", "36"])
    assert prompts == ["What is your name: ", "How old are you: "]
    assert [line.text for line in result.lines if line.kind is O] == [
        "Hello Ada, you are 36 years old. Loop i+1",
    ]


JAVA_PROGRAM = """\
import java.util.Scanner;

public class Main {
    public static void main(String[] args) {
        Scanner sc = new Scanner(System.in);
        System.out.print("Name: ");
        String name = sc.nextLine();
        System.out.print("Age: ");
        int age = sc.nextInt();
        // greet
        System.out.println("Hello, " + name + "!");
        System.out.println("In ten years: " + (age + 10));
        double avg = 7 / 2;
        System.out.println(avg);
        /* System.out.println("hidden"); */
    }
}
"""


def test_java_program(run_preview):
    _, result, prompts = run_preview(JAVA_PROGRAM, "java", answers=["Ada", "30"])
    assert result.outcome is RunOutcome.COMPLETED
    assert prompts == ["Name: ", "Age: "]
    assert _lines(result) == [
        (">>> Compiling Java...", I),
        (">>> Running Main class...", I),
        ("Name: Ada", IN),
        ("Age: 30", IN),
        ("Hello, Ada!", O),
        ("In ten years: 40", O),
        ("3.0", O),
        (">>> BUILD SUCCESSFUL", I),
    ]


@pytest.mark.parametrize(
    "body,expected",
    [
        ('System.out.println("a" + 1 + 2);', ["a12"]),
        ("System.out.println(1 + 2 + \"a\");", ["3a"]),
        ("int x = 5;\nx++;\nSystem.out.println(x);", ["6"]),
        ("final int x = 5;\nSystem.out.println(x * 2);", ["10"]),
        ("System.out.println(10 / 0);", [DIVISION_BY_ZERO]),
        ('System.out.print("a");\nSystem.out.print("b");', ["ab"]),
        ("System.out.println();", [""]),
    ],
)
def test_java_output(body, expected, run_preview):
    _, result, _ = run_preview(body, "java")
    assert [line.text for line in result.lines if line.kind is O] == expected


def test_java_parsed_reader(run_preview):
    source = "double d = Double.parseDouble(sc.nextLine());\nSystem.out.println(d * 2);"
    _, result, _ = run_preview(source, "java", answers=["1.25"])
    assert [line.text for line in result.lines if line.kind is O] == ["2.5"]


BATCH_SOURCE = "\n".join([
    'print("start")',
    'a = input("A: ")',
    'b = int(input("B: "))',
    'print(f"{a} {b}")',
])


def test_sync_mode_interleaves_output_and_prompts(run_preview):
    _, result, prompts = run_preview(BATCH_SOURCE, "python", answers=["x", "oops"])
    assert prompts == ["A: ", "B: "]
    assert [line.kind for line in result.lines] == [I, O, IN, IN, W, O, I]
    assert result.lines[1].text == "start"


def test_batch_mode_collects_inputs_first(run_preview):
    _, result, prompts = run_preview(BATCH_SOURCE, "python", answers=["x", "oops"], input_mode="batch")
    assert prompts == ["A: ", "B: "]
    assert _lines(result)[1:] == [
        ("A: x", IN),
        ("B: oops", IN),
        (result.lines[3].text, W),
        ("start", O),
        ("x 0", O),
        (PY_END.text, I),
    ]


def test_batch_mode_uses_partial_prompt(run_preview):
    source = 'print("Age: ", end="")\nage = int(input())\nprint(age * 2)'
    _, result, prompts = run_preview(source, "python", answers=["21"], input_mode="batch")
    assert prompts == ["Age: "]
    assert [line.text for line in result.lines if line.kind is O] == ["42"]


def test_batch_mode_without_inputs(run_preview):
    _, result, prompts = run_preview('print("only")', "python", input_mode="batch")
    assert prompts == []
    assert [line.text for line in result.lines if line.kind is O] == ["only"]


@pytest.mark.parametrize("mode", ["sync", "batch"])
@pytest.mark.parametrize(
    "source,answers,expected_prompts,expected_output",
    [
        ('name = input("Name: ").strip().title()\nprint("Hi", name)', ["ada"], ["Name: "], ["Hi Ada"]),
        ('print("Hi", input("Name: "))', ["Ada"], ["Name: "], ["Hi Ada"]),
        ('a = input("A: ")\nprint(input("B: "), a)', ["1st", "2nd"], ["A: ", "B: "], ["2nd 1st"]),
        ('print(int(input("n")) + 1)', ["41"], ["n"], ["42"]),
        ('x = input("a") + input("b")\nprint(x)', ["foo", "bar"], ["a", "b"], ["foobar"]),
        ('input("Press enter (or anything): ")\nprint("done")', ["k"], ["Press enter (or anything): "], ["done"]),
    ],
)
def test_input_call_sites_anywhere_in_a_line(mode, source, answers, expected_prompts, expected_output, run_preview):
    _, result, prompts = run_preview(source, "python", answers=answers, input_mode=mode)
    assert result.outcome is RunOutcome.COMPLETED
    assert prompts == expected_prompts
    assert [line.text for line in result.lines if line.kind is O] == expected_output


@pytest.mark.parametrize("mode", ["sync", "batch"])
def test_chained_input_echoes_raw_answer(mode, run_preview):
    source = 'name = input("Name: ").strip().title()\nprint("Hi", name)'
    _, result, _ = run_preview(source, "python", answers=["ada"], input_mode=mode)
    assert [line.text for line in result.lines if line.kind is IN] == ["Name: ada"]


def test_input_inside_string_is_not_a_call(run_preview):
    _, result, prompts = run_preview('print("call input() now")', "python")
    assert prompts == []
    assert [line.text for line in result.lines if line.kind is O] == ["call input() now"]
