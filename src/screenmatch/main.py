"""Command-line entry point.

Loads configuration and logging, registers reference images given as
label=path pairs, takes a frame from a file (or grabs the screen) and prints
what the recognizer finds.

    screenmatch locate --template start=assets/start.png --frame shot.png start
    screenmatch feature-all --feature amiya=assets/amiya.png
    screenmatch text --models models/ --frame shot.png Start Cancel
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from .core.config import ConfigManager
from .core.logging_setup import get_artifacts_dir, setup_logging
from .recognizer import Recognizer
from .vision.preprocess import load_image

logger = logging.getLogger(__name__)


def _pair(value: str) -> Tuple[str, str]:
    label, sep, path = value.partition("=")
    if not sep or not label or not path:
        raise argparse.ArgumentTypeError(f"expected label=path, got {value!r}")
    return label, path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="screenmatch", description="Locate UI elements in a screenshot")
    parser.add_argument("--config", help="path to config.ini (default: per-user location)")
    parser.add_argument("--log-level", help="override log level (DEBUG, INFO, ...)")
    parser.add_argument("--frame", help="image file to search; grabs the screen when omitted")
    parser.add_argument("--monitor", type=int, default=1, help="monitor to grab when --frame is omitted")
    parser.add_argument("--debug-artifacts", action="store_true", help="save feature-match visualisations")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("locate", help="template match one or more labels")
    p.add_argument("--template", type=_pair, action="append", default=[], metavar="LABEL=PATH")
    p.add_argument("--threshold", type=float, default=0.9)
    p.add_argument("--cache", action="store_true", help="enable the position cache")
    p.add_argument("--repeat", type=int, default=1, help="query each label this many times")
    p.add_argument("labels", nargs="+")

    p = sub.add_parser("feature", help="feature match a single label")
    p.add_argument("--feature", type=_pair, action="append", default=[], metavar="LABEL=PATH")
    p.add_argument("label")

    p = sub.add_parser("feature-all", help="feature match every registered label")
    p.add_argument("--feature", type=_pair, action="append", default=[], metavar="LABEL=PATH")

    p = sub.add_parser("text", help="OCR the frame and report the given labels")
    p.add_argument("--engine", choices=("dnn", "tesseract"), default="dnn")
    p.add_argument("--models", help="OCR model directory (default: ocr_model_dir from config)")
    p.add_argument("--threads", type=int)
    p.add_argument("labels", nargs="+")
    return parser


def _load_frame(args):
    if args.frame:
        frame = load_image(args.frame)
        if frame is None:
            logger.error("cannot decode frame %s", args.frame)
        return frame
    from .io.capture import ScreenCapture

    cap = ScreenCapture()
    try:
        return cap.grab_bgr(cap.monitor(args.monitor))
    finally:
        cap.close()


def _register(register, pairs: Sequence[Tuple[str, str]]) -> bool:
    ok = True
    for label, path in pairs:
        if not register(label, path):
            print(f"failed to load {label} from {path}", file=sys.stderr)
            ok = False
    return ok


def run(args: argparse.Namespace, config_manager: ConfigManager) -> int:
    debug_dir = get_artifacts_dir(config_manager) if args.debug_artifacts else None
    ocr = None
    if args.command == "text" and args.engine == "tesseract":
        from .ocr.tesseract import TesseractTextDetector

        ocr = TesseractTextDetector(config_manager.get("tesseract_cmd"))
        if not ocr.ready:
            print("tesseract executable not found", file=sys.stderr)
            return 2
    rec = Recognizer(config_manager.recognition_config(), ocr=ocr, debug_dir=debug_dir)

    if args.command == "locate":
        if not _register(rec.register_template, args.template):
            return 2
    elif args.command in ("feature", "feature-all"):
        if not _register(rec.register_feature, args.feature):
            return 2
    elif args.command == "text" and ocr is None:
        model_dir = args.models or config_manager.get("ocr_model_dir")
        if not model_dir or not rec.init_ocr_models(model_dir):
            print(f"OCR models not available in {model_dir!r}", file=sys.stderr)
            return 2
    if args.command == "text" and args.threads:
        rec.set_ocr_threads(args.threads)

    frame = _load_frame(args)
    if frame is None:
        return 2

    found = False
    if args.command == "locate":
        rec.set_cache_enabled(args.cache)
        for _ in range(max(1, args.repeat)):
            for label in args.labels:
                kind, score, rect = rec.locate(frame, label, args.threshold)
                print(f"{label}\t{kind.value}\t{score:.4f}\t{rect.as_tuple()}")
                found = found or score >= args.threshold
    elif args.command == "feature":
        area = rec.locate_by_feature(frame, args.label)
        if area is not None:
            print(f"{area.text}\t{area.rect.as_tuple()}")
            found = True
    elif args.command == "feature-all":
        for area in rec.locate_all_by_feature(frame):
            print(f"{area.text}\t{area.rect.as_tuple()}")
            found = True
    elif args.command == "text":
        for area in rec.find_text(frame, args.labels):
            print(f"{area.text}\t{area.rect.as_tuple()}")
            found = True
    return 0 if found else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config_manager = ConfigManager(args.config)
    setup_logging(config_manager, level=args.log_level)
    try:
        return run(args, config_manager)
    except Exception:
        logging.getLogger(__name__).exception("Unhandled exception")
        return 3


if __name__ == "__main__":
    sys.exit(main())
