import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path

from evalai.client.bootstrap import build_model_client
from evalai.core.config import DOCX_MEDIA_TYPE
from evalai.core.exceptions import EvaluationException
from evalai.models.content import SubmissionFile
from evalai.models.rubric import parse_rubric
from evalai.services.evaluation.model_invoker import ModelInvoker
from evalai.services.homework_evaluator import HomeworkEvaluator
from evalai.services.persistence import InMemorySubmissionStore


def guess_media_type(path: Path) -> str:
    if path.suffix.lower() == ".docx":
        return DOCX_MEDIA_TYPE
    media_type, _ = mimetypes.guess_type(path.name)
    return media_type or "application/octet-stream"


async def _amain(path: Path, question: str, rubric_raw: str, strict: bool, media_type: str | None) -> int:
    rubric = parse_rubric(rubric_raw)
    submission = SubmissionFile(
        data=path.read_bytes(),
        media_type=media_type or guess_media_type(path),
        filename=path.name,
    )
    evaluator = HomeworkEvaluator(ModelInvoker(build_model_client()), InMemorySubmissionStore())
    outcome = await evaluator.evaluate(submission, rubric, question, strict=strict)
    print(json.dumps(outcome.result.model_dump(), ensure_ascii=False, indent=2))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Grade a homework file against a rubric")
    parser.add_argument("--file", required=True, help="Path to an image, PDF or DOCX submission")
    parser.add_argument("--question", required=True, help="Assignment question")
    parser.add_argument(
        "--rubric", required=True,
        help='JSON array, e.g. \'[{"criterion": "Accuracy", "points": 5}]\', or @path/to/rubric.json',
    )
    parser.add_argument("--media-type", help="Override the media type guessed from the file name")
    parser.add_argument("--strict", action="store_true", help="Use the strict grading persona")
    args = parser.parse_args(argv)

    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 2

    rubric_raw = args.rubric
    if rubric_raw.startswith("@"):
        rubric_raw = Path(rubric_raw[1:]).read_text(encoding="utf-8")

    try:
        return asyncio.run(_amain(path, args.question, rubric_raw, args.strict, args.media_type))
    except EvaluationException as e:
        print(f"{type(e).__name__}: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
