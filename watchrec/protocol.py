"""Line-oriented text protocol spoken over the TCP socket.

One command per ``\\n``-terminated line, one response line back::

    WATCH <userID> <videoID>
    RECOMMEND_FOR_VIDEO <videoID>
"""
from dataclasses import dataclass
from typing import List, Sequence, Union

from .errors import CommandError

WATCH = "WATCH"
RECOMMEND_FOR_VIDEO = "RECOMMEND_FOR_VIDEO"

WATCH_UPDATED = "WATCH_UPDATED"
INVALID_WATCH = "ERROR: Invalid WATCH command format"
INVALID_RECOMMEND = "ERROR: Invalid RECOMMEND_FOR_VIDEO command format"
UNRECOGNIZED = "ERROR: Unrecognized command"
TOO_LONG = "ERROR: Command too long"
BUSY = "ERROR: Server busy"


@dataclass(frozen=True)
class Watch:
    user_id: str
    video_id: str


@dataclass(frozen=True)
class RecommendForVideo:
    video_id: str


Command = Union[Watch, RecommendForVideo]


def parse_command(line: str) -> Command:
    tokens = line.split()
    keyword = tokens[0] if tokens else ""
    if keyword == WATCH:
        if len(tokens) < 3:
            raise CommandError(INVALID_WATCH)
        return Watch(user_id=tokens[1], video_id=tokens[2])
    if keyword == RECOMMEND_FOR_VIDEO:
        if len(tokens) < 2:
            raise CommandError(INVALID_RECOMMEND)
        return RecommendForVideo(video_id=tokens[1])
    raise CommandError(UNRECOGNIZED)


def format_list(video_ids: Sequence[str]) -> str:
    return "[" + ",".join(f'"{vid}"' for vid in video_ids) + "]"


def parse_list(text: str) -> List[str]:
    """Inverse of :func:`format_list`.

    IDs are not escaped on the wire, so commas and quotes inside an ID
    survive; only an ID containing the three characters `","` is ambiguous.
    """
    body = text.strip()
    if body == "[]":
        return []
    if not (body.startswith('["') and body.endswith('"]') and len(body) >= 4):
        raise ValueError(f"not a recommendation list: {text!r}")
    return body[2:-2].split('","')


def format_watch_updated(video_ids: Sequence[str]) -> str:
    return f"{WATCH_UPDATED}, Recommendations: {format_list(video_ids)}"


def parse_watch_updated(text: str) -> List[str]:
    prefix = f"{WATCH_UPDATED}, Recommendations: "
    if not text.startswith(prefix):
        raise ValueError(f"not a WATCH response: {text!r}")
    return parse_list(text[len(prefix):])
