"""YouTube stream retrieval backed by yt-dlp.

The bot only needs four things from the media library:

  1. Turn a user-supplied string into a video id.
  2. Fetch the stream manifest (all available formats) for that id.
  3. Pick the best stream that carries both audio and video, so the result
     can be sent to Telegram without muxing.
  4. Download that stream to a local path.

yt-dlp is synchronous, so the composed ``resolve_and_fetch`` runs the
blocking part in a worker thread.
"""
import asyncio
import logging
import os
import re

from yt_dlp import YoutubeDL
from yt_dlp.extractor.youtube import YoutubeIE

logger = logging.getLogger(__name__)

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
_YDL_BASE_OPTIONS = {"quiet": True, "no_warnings": True, "noprogress": True}


class MediaError(Exception):
    """Raised when a video cannot be resolved to a downloadable stream."""
    pass


def parse_video_id(value: str) -> str:
    """Extract a YouTube video id from a bare id or a video URL.

    Accepts a bare id such as ``dQw4w9WgXcQ`` or any video URL yt-dlp's
    YouTube extractor recognises; links pasted without a scheme
    (``youtu.be/<id>``) are tried as https.

    Raises:
        MediaError: If no valid id can be found.
    """
    value = (value or "").strip()
    if _VIDEO_ID_RE.match(value):
        return value

    url = value if "://" in value else f"https://{value}"
    video_id = YoutubeIE.get_temp_id(url) if YoutubeIE.suitable(url) else None
    if not video_id:
        raise MediaError(f"Invalid YouTube video id or URL: {value!r}")
    return video_id


def _watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def get_stream_manifest(video_id: str) -> list[dict]:
    """Return every format yt-dlp reports for the video."""
    with YoutubeDL(dict(_YDL_BASE_OPTIONS)) as ydl:
        info = ydl.extract_info(_watch_url(video_id), download=False)
    return list(info.get("formats") or [])


def _is_muxed(stream: dict) -> bool:
    return (stream.get("vcodec") or "none") != "none" and (
        stream.get("acodec") or "none"
    ) != "none"


def get_muxed_stream_with_highest_quality(manifest: list[dict]) -> dict:
    """Pick the combined audio+video stream with the best video quality.

    Raises:
        MediaError: If the manifest has no muxed stream.
    """
    muxed = [stream for stream in manifest if _is_muxed(stream)]
    if not muxed:
        raise MediaError("No stream with both audio and video is available")
    return max(
        muxed,
        key=lambda s: (s.get("height") or 0, s.get("fps") or 0, s.get("tbr") or 0),
    )


def download_stream(video_id: str, stream: dict, file_path: str) -> str:
    """Download the chosen stream to ``file_path`` and return the path."""
    options = dict(_YDL_BASE_OPTIONS)
    options.update({"format": stream["format_id"], "outtmpl": file_path})
    with YoutubeDL(options) as ydl:
        ydl.download([_watch_url(video_id)])
    return file_path


def _fetch(value: str, directory: str) -> str:
    video_id = parse_video_id(value)
    stream = get_muxed_stream_with_highest_quality(get_stream_manifest(video_id))
    file_path = os.path.join(directory, f"video.{stream.get('ext') or 'mp4'}")
    logger.info(f"Downloading video {video_id} (format {stream['format_id']})")
    return download_stream(video_id, stream, file_path)


async def resolve_and_fetch(value: str, directory: str) -> str:
    """Resolve ``value`` to a video and download it into ``directory``.

    Returns:
        Local path of the downloaded file.
    """
    return await asyncio.to_thread(_fetch, value, directory)
