"""One of each kind of top-level declaration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, TypeVar

from collections import OrderedDict as OrderedDict

if TYPE_CHECKING:
    from collections.abc import Iterator

T = TypeVar("T")


class PublicThing:
    pass


class _Hidden:
    pass


VERSION = "1.0"
_cache = {}
square = lambda x: x * x


def run():
    pass


async def _worker():
    pass


print(os.getcwd())
