"""Image normalization through ffprobe/ffmpeg.

Images that already fit the requested resolution are passed through as-is.
Larger ones are scaled down and re-encoded to AVIF, keeping animation and
alpha when the input has them.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from typing import BinaryIO

CONTENT_TYPE_TO_EXTENSION: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/avif": "avif",
}


class MediaError(RuntimeError):
    """Raised when an image cannot be probed or processed."""


class UnsupportedImageError(MediaError):
    """The input is not one of the accepted image formats."""


@dataclass
class ProbeInfo:
    content_type: str
    width: int
    height: int
    format_name: str
    codec_name: str


@dataclass
class ProcessedImage:
    """Result of normalizing one image.

    ``file`` is positioned at the start. Call :meth:`close` once done; it only
    closes files this module opened.
    """

    file: BinaryIO
    width: int
    height: int
    content_type: str
    file_size: int
    owned: bool = False

    @property
    def extension(self) -> str:
        return CONTENT_TYPE_TO_EXTENSION[self.content_type]

    def close(self) -> None:
        if self.owned:
            self.file.close()


def format_to_content_type(format_name: str, codec_name: str) -> str | None:
    """Map ffprobe format/codec names to a browser-displayable content type."""
    if "jpeg" in format_name or codec_name == "mjpeg":
        return "image/jpeg"
    if "png" in format_name or codec_name == "png":
        return "image/png"
    if "gif" in format_name or codec_name == "gif":
        return "image/gif"
    if "webp" in format_name or codec_name == "webp":
        return "image/webp"
    if "avif" in format_name or codec_name == "av1":
        return "image/avif"
    return None


def encoder_settings(max_res: int) -> tuple[int, int]:
    """Return ``(cpu_used, crf)`` for a target resolution."""
    if max_res <= 512:
        return 4, 28
    if max_res <= 1024:
        return 5, 30
    if max_res <= 2000:
        return 6, 32
    return 7, 35


def build_avif_args(input_path: str, output_path: str, max_res: int, *, animated: bool, alpha: bool) -> list[str]:
    """Build the ffmpeg command line that scales and encodes to AVIF."""
    cpu_used, crf = encoder_settings(max_res)
    # AV1 4:2:0 requires even width and height.
    vf = ",".join(
        [
            f"scale='min({max_res},iw)':'min({max_res},ih)':force_original_aspect_ratio=decrease",
            "scale=ceil(iw/2)*2:ceil(ih/2)*2",
            "format=yuva420p" if alpha else "format=yuv420p",
        ]
    )
    args = [
        "ffmpeg", "-hide_banner", "-nostdin", "-loglevel", "error",
        "-i", input_path,
        "-vf", vf,
        "-map", "0:v:0",
        "-an",
        "-c:v", "libaom-av1",
        "-crf", str(crf),
        "-cpu-used", str(cpu_used),
        "-row-mt", "1",
        "-tiles", "2x2",
    ]
    if not animated:
        args += ["-still-picture", "1", "-frames:v", "1"]
    args += ["-y", output_path]
    return args


async def _run(*args: str) -> bytes:
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise MediaError(f"{args[0]} not found") from exc

    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        proc.kill()
        await proc.wait()
        raise

    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise MediaError(f"{args[0]} exited with status {proc.returncode}: {detail}")
    return stdout


async def probe(path: str) -> ProbeInfo:
    """Detect content type and dimensions of the first video stream."""
    output = await _run(
        "ffprobe", "-v", "quiet", "-print_format", "json", "-show_streams", "-show_format", path
    )
    try:
        data = json.loads(output)
    except json.JSONDecodeError as exc:
        raise MediaError("parse ffprobe output") from exc

    streams = data.get("streams") or []
    stream = next((s for s in streams if s.get("codec_type") == "video"), None)
    if stream is None:
        raise MediaError("no video stream found")

    width = int(stream.get("width") or 0)
    height = int(stream.get("height") or 0)
    if width == 0 or height == 0:
        raise MediaError(f"invalid dimensions: {width}x{height}")

    format_name = (data.get("format") or {}).get("format_name", "")
    codec_name = stream.get("codec_name", "")
    content_type = format_to_content_type(format_name, codec_name)
    if content_type is None:
        raise UnsupportedImageError(f"unsupported image format: {format_name}/{codec_name}")
    return ProbeInfo(content_type, width, height, format_name, codec_name)


async def is_animated(path: str, info: ProbeInfo) -> bool:
    output = await _run(
        "ffprobe", "-v", "quiet", "-select_streams", "v:0", "-count_frames",
        "-show_entries", "stream=nb_frames", "-of", "csv=p=0", path,
    )
    frames = output.decode().strip()
    if frames and frames != "N/A":
        try:
            return int(frames) > 1
        except ValueError as exc:
            raise MediaError(f"parse frame count {frames!r}") from exc

    if "gif" not in info.format_name:
        return False
    try:
        duration = await _run(
            "ffprobe", "-v", "quiet", "-show_entries", "format=duration", "-of", "csv=p=0", path
        )
        return float(duration.decode().strip()) > 0
    except (MediaError, ValueError):
        return False


async def has_alpha(path: str) -> bool:
    output = await _run(
        "ffprobe", "-v", "error", "-select_streams", "v:0",
        "-show_entries", "stream=pix_fmt", "-of", "default=nw=1:nk=1", path,
    )
    # Alpha pixel formats (rgba, yuva420p, ...) carry an "a".
    return "a" in output.decode().strip()


def _stream_size(stream: BinaryIO) -> int:
    size = stream.seek(0, os.SEEK_END)
    stream.seek(0)
    return size


async def resize_image(max_res: int, stream: BinaryIO) -> ProcessedImage:
    """Normalize one image so neither side exceeds ``max_res``."""
    fd, input_path = tempfile.mkstemp(prefix="ffmpeg_input_")
    try:
        with os.fdopen(fd, "wb") as scratch:
            stream.seek(0)
            await asyncio.to_thread(shutil.copyfileobj, stream, scratch)

        info = await probe(input_path)
        if info.width <= max_res and info.height <= max_res:
            return ProcessedImage(
                file=stream,
                width=info.width,
                height=info.height,
                content_type=info.content_type,
                file_size=_stream_size(stream),
            )

        animated = await is_animated(input_path, info)
        try:
            alpha = await has_alpha(input_path)
        except MediaError:
            alpha = False
        return await _encode_avif(input_path, max_res, animated=animated, alpha=alpha)
    finally:
        os.unlink(input_path)


async def _encode_avif(input_path: str, max_res: int, *, animated: bool, alpha: bool) -> ProcessedImage:
    fd, output_path = tempfile.mkstemp(prefix="ffmpeg_output_", suffix=".avif")
    os.close(fd)
    try:
        await _run(*build_avif_args(input_path, output_path, max_res, animated=animated, alpha=alpha))
        info = await probe(output_path)
        processed = open(output_path, "rb")  # noqa: SIM115 - handed to the caller
    finally:
        # The open handle keeps the data readable after unlinking.
        os.unlink(output_path)

    return ProcessedImage(
        file=processed,
        width=info.width,
        height=info.height,
        content_type="image/avif",
        file_size=_stream_size(processed),
        owned=True,
    )


async def resize_images(max_res: int, streams: list[BinaryIO]) -> list[ProcessedImage]:
    """Normalize every stream concurrently.

    The first failure cancels the remaining work; images already produced are
    closed before the error propagates.
    """
    out: list[ProcessedImage | None] = [None] * len(streams)

    async def run(index: int, stream: BinaryIO) -> None:
        try:
            out[index] = await resize_image(max_res, stream)
        except MediaError as exc:
            raise type(exc)(f"resize image {index}: {exc}") from exc

    try:
        async with asyncio.TaskGroup() as tg:
            for index, stream in enumerate(streams):
                tg.create_task(run(index, stream))
    except BaseException as exc:
        for image in out:
            if image is not None:
                image.close()
        if isinstance(exc, BaseExceptionGroup):
            first = exc.exceptions[0]
            if isinstance(first, MediaError):
                raise first from first.__cause__
            raise MediaError(f"resize images: {first}") from first
        raise

    return [image for image in out if image is not None]
