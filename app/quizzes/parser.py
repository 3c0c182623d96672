"""
Plain-text quiz parser.

Expected format, one block per question, blocks separated by a line of
dashes:

    1. Question text
    A) option
    B) option
    C) option
    R: B
    E: explanation
    Pontos: 10
    ---

An option marked with *, ✓ or (x) counts as the correct one when there is
no R: line. Without either, the first option is taken as correct.
"""
import re
import uuid

OPTION_LABELS = "ABCDEF"

_BLOCK_SPLIT = re.compile(r"^-{3,}\s*$", re.MULTILINE)
_ANSWER = re.compile(r"^(?:R:|Resposta:|Correta:|Gabarito:?)\s*([A-Fa-f])\s*$", re.IGNORECASE)
_EXPLANATION = re.compile(r"^(?:E:|Explicação:|Explicacao:|Exp:)\s*(.+)", re.IGNORECASE)
_POINTS = re.compile(r"^(?:Pontos:|Pts:|XP:?)\s*(\d+)", re.IGNORECASE)
_OPTION = re.compile(r"^([A-Fa-f])[.)]\s*(.+)")
_QUESTION = re.compile(r"^(?:\d+[.)]\s*)?(?:P:|Q:|Pergunta:?)?\s*(.+)", re.IGNORECASE)
_CORRECT_MARK = re.compile(r"[*✓✔]|\[x\]|\(x\)", re.IGNORECASE)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def parse_question_block(block: str) -> dict | None:
    lines = [line.strip() for line in block.splitlines() if line.strip()]
    if len(lines) < 3:
        return None

    prompt = ""
    options = []
    correct_label = ""
    explanation = ""
    points = 10

    for line in lines:
        # Order matters: "E:" is an explanation, "E)" is option E
        m = _ANSWER.match(line)
        if m:
            correct_label = m.group(1).upper()
            continue

        m = _EXPLANATION.match(line)
        if m and not re.match(r"^E[.)]", line, re.IGNORECASE):
            explanation = m.group(1).strip()
            continue

        m = _POINTS.match(line)
        if m:
            points = int(m.group(1)) or 10
            continue

        m = _OPTION.match(line)
        if m:
            label = m.group(1).upper()
            text = m.group(2).strip()
            if _CORRECT_MARK.search(text) and not correct_label:
                correct_label = label
            options.append({
                "id": _new_id("opt"),
                "label": label,
                "text": _CORRECT_MARK.sub("", text).strip(),
            })
            continue

        if not prompt and not re.match(r"^[A-Fa-f][.):]", line):
            m = _QUESTION.match(line)
            if m:
                prompt = m.group(1).strip()

    if not prompt or len(options) < 2:
        return None

    correct = next((o for o in options if o["label"] == correct_label), options[0])
    return {
        "id": _new_id("q"),
        "prompt": prompt,
        "options": options,
        "correctOptionId": correct["id"],
        "points": points,
        "explanation": explanation,
    }


def parse_quiz_text(text: str) -> tuple[list[dict], list[str]]:
    """Returns (questions, errors)."""
    questions: list[dict] = []
    errors: list[str] = []

    blocks = [b for b in _BLOCK_SPLIT.split(text or "") if b.strip()]
    for index, block in enumerate(blocks, start=1):
        try:
            question = parse_question_block(block)
        except Exception as e:
            errors.append(f"Bloco {index}: {e}")
            continue
        if question:
            questions.append(question)
        else:
            errors.append(f"Bloco {index}: pergunta sem enunciado ou com menos de 2 alternativas")

    return questions, errors
