"""CLI that turns images, masks and clicks into inference-ready tensor files."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..errors import ExternalStageError, PreconditionError, ShapeError
from ..models.prompt import Polarity
from ..repositories.image_repository import ImageRepository
from ..services import codec_service as codec
from ..services.editor_service import EditorService
from ..services.render_service import IMAGE_SURFACE, RenderService

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )


def _parse_point(text: str):
    """'x,y' or 'x,y,+' / 'x,y,-' → (x, y, Polarity)."""
    parts = text.split(",")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"Point must be x,y[,+|-], got {text!r}")
    try:
        x, y = float(parts[0]), float(parts[1])
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Non-numeric point {text!r}") from exc
    sign = parts[2].strip() if len(parts) == 3 else "+"
    if sign not in ("+", "-"):
        raise argparse.ArgumentTypeError(f"Polarity must be + or -, got {sign!r}")
    return x, y, Polarity.POSITIVE if sign == "+" else Polarity.NEGATIVE


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Prepare SAM / inpainting tensors from images.")
    sub = parser.add_subparsers(dest="command", required=True)

    enc = sub.add_parser("encode", help="Write the encoder input tensor")
    enc.add_argument("--image", required=True, help="Path to the input image")
    enc.add_argument("--out", default="outputs", help="Output directory")

    dec = sub.add_parser("decode", help="Write decoder feeds for a set of clicks")
    dec.add_argument("--image", required=True, help="Path to the input image")
    dec.add_argument("--embedding", required=True, help="Encoder output (.npy or .npz)")
    dec.add_argument("--point", type=_parse_point, action="append", default=[],
                     help="Click as x,y[,+|-] in image pixels; repeatable")
    dec.add_argument("--out", default="outputs", help="Output directory")

    inp = sub.add_parser("inpaint", help="Write inpainting image + mask tensors")
    inp.add_argument("--image", required=True, help="Path to the input image")
    inp.add_argument("--brush-mask", default=None, help="Brush mask image (non-zero = paint)")
    inp.add_argument("--sam-mask", default=None, help="Decoder mask (.npy/.npz, logits or bool)")
    inp.add_argument("--out", default="outputs", help="Output directory")

    res = sub.add_parser("restore", help="Convert a CHW inpainting output tensor to PNG")
    res.add_argument("--tensor", required=True, help="Inpainting output (.npy or .npz)")
    res.add_argument("--out", default="outputs/inpainted.png", help="Output PNG path")
    return parser


def _load_editor(image_path: str) -> EditorService:
    editor = EditorService()
    editor.load_image(ImageRepository.load(image_path))
    # Files are processed at native size; no interactive resize prompt here.
    if editor.session is None:
        editor.decide_resize(False)
    return editor


def _encode(args) -> List[Path]:
    editor = _load_editor(args.image)
    tensor = editor.build_encoder_request()
    return [ImageRepository.save_tensors(Path(args.out) / "encoder_request.npz", input_image=tensor)]


def _decode(args) -> List[Path]:
    editor = _load_editor(args.image)
    editor.set_embedding(ImageRepository.load_tensor(args.embedding))
    for x, y, polarity in args.point:
        editor.add_prompt(x, y, polarity)
    request = editor.build_decoder_request()
    return [ImageRepository.save_tensors(
        Path(args.out) / "decoder_request.npz",
        image_embeddings=request.image_embeddings,
        point_coords=request.point_coords,
        point_labels=request.point_labels,
        mask_input=request.mask_input,
        has_mask_input=request.has_mask_input,
        orig_im_size=request.orig_im_size,
    )]


def _inpaint(args) -> List[Path]:
    editor = _load_editor(args.image)
    session = editor.session
    if args.brush_mask:
        session.brush = ImageRepository.load_mask(args.brush_mask, session.width, session.height)
    if args.sam_mask:
        editor.apply_decoder_mask(ImageRepository.load_tensor(args.sam_mask))

    renderer = RenderService()
    preview = renderer.rasterize(renderer.project(session), IMAGE_SURFACE, session.width, session.height)

    request = editor.build_inpainting_request()
    out = Path(args.out)
    return [
        ImageRepository.save_tensors(
            out / "inpainting_request.npz",
            image=request.image_tensor,
            mask=request.mask_tensor,
        ),
        ImageRepository.save(preview, out / "preview.png"),
    ]


def _restore(args) -> List[Path]:
    image = codec.chw_tensor_to_image(ImageRepository.load_tensor(args.tensor))
    return [ImageRepository.save(image, args.out)]


_COMMANDS = {"encode": _encode, "decode": _decode, "inpaint": _inpaint, "restore": _restore}


def main(argv: Optional[list[str]] = None) -> None:
    _configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        written = _COMMANDS[args.command](args)
    except (ShapeError, PreconditionError, ExternalStageError, FileNotFoundError, KeyError, ValueError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        sys.exit(1)

    for path in written:
        logger.info("Wrote %s", path)
        print(path)


if __name__ == "__main__":
    main()
