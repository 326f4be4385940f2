import sys
import os
import json

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.exceptions import QuizDeskError
from core.logger import setup_logging
from schemas.quiz import Language
from services.quiz_service import build_questions
from utils.extractor import extract_text

USAGE = "Usage: python scripts/parse_document.py <question_file> [answer_key_file] [language]"

def read_text(path: str) -> str:
    with open(path, "rb") as f:
        return extract_text(f.read(), os.path.basename(path))

def preview(question_path: str, answer_path: str = None, language: str = Language.ENGLISH.value):
    question_text = read_text(question_path)
    answer_text = read_text(answer_path) if answer_path else None

    questions = build_questions(question_text, answer_text, Language(language))
    print(json.dumps([q.model_dump() for q in questions], ensure_ascii=False, indent=2))
    print(f"Parsed {len(questions)} questions.", file=sys.stderr)

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    setup_logging()
    args = sys.argv[1:]
    try:
        preview(
            args[0],
            args[1] if len(args) > 1 else None,
            args[2] if len(args) > 2 else Language.ENGLISH.value,
        )
    except QuizDeskError as e:
        print(f"❌ {e} ({e.code})")
        sys.exit(2)
