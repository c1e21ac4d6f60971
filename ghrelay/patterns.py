"""Accepted GitHub URL shapes and how each one is forwarded."""

import re
from enum import Enum
from typing import Optional


class Shape(Enum):
    RELEASE_ARCHIVE = "release_archive"
    BLOB_RAW = "blob_raw"
    GIT_INFO = "git_info"
    RAW_HOST = "raw_host"
    GIST = "gist"
    TAGS = "tags"


class Classification(Enum):
    UNCLASSIFIED = ""
    DIRECT = "direct"
    BLOB = "blob"
    RAW = "raw"


# 顺序即优先级
SHAPE_PATTERNS = (
    (Shape.RELEASE_ARCHIVE, re.compile(r"^(?:https?://)?github\.com/.+?/.+?/(?:releases|archive)/.*$", re.I)),
    (Shape.BLOB_RAW, re.compile(r"^(?:https?://)?github\.com/.+?/.+?/(?:blob|raw)/.*$", re.I)),
    (Shape.GIT_INFO, re.compile(r"^(?:https?://)?github\.com/.+?/.+?/(?:info|git-).*$", re.I)),
    (Shape.RAW_HOST, re.compile(r"^(?:https?://)?raw\.(?:githubusercontent|github)\.com/.+?/.+?/.+?/.+$", re.I)),
    (Shape.GIST, re.compile(r"^(?:https?://)?gist\.(?:githubusercontent|github)\.com/.+?/.+?/.+$", re.I)),
    (Shape.TAGS, re.compile(r"^(?:https?://)?github\.com/.+?/.+?/tags.*$", re.I)),
)

DIRECT_SHAPES = frozenset({Shape.RELEASE_ARCHIVE, Shape.GIT_INFO, Shape.GIST, Shape.TAGS})


_by_shape = dict(SHAPE_PATTERNS)


def _matches(shape: Shape, url: str) -> bool:
    return _by_shape[shape].match(url) is not None


def match_shape(url: str) -> Optional[Shape]:
    """Return the first accepted shape matching url, or None"""
    for shape, regex in SHAPE_PATTERNS:
        if regex.match(url):
            return shape
    return None


def is_allowed(url: str) -> bool:
    return match_shape(url) is not None


def classify(target: str) -> Classification:
    """Decide how a target is forwarded: as-is, blob rewrite, or raw host.

    Direct shapes win over blob/raw, so a URL matching several shapes is
    always forwarded without a path rewrite.
    """
    if any(_matches(shape, target) for shape in DIRECT_SHAPES):
        return Classification.DIRECT
    if _matches(Shape.BLOB_RAW, target):
        return Classification.BLOB
    if _matches(Shape.RAW_HOST, target):
        return Classification.RAW
    return Classification.UNCLASSIFIED
