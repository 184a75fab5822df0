"""Parallel word counting in map/reduce style.

The input is cut into one slice per worker thread. Slice edges are moved so
that no word is split between two workers. Each worker counts the words of
its slice in its own cache. The workers then merge their caches into one
shared cache in parallel, each worker taking its own range of buckets.
Words are maximal runs of ASCII letters and are counted case-insensitively.
"""

from __future__ import annotations

import os
import re
import string
import sys
import time
from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor

MAX_WORD_SIZE = 32
MAX_N_WORDS = 8192
N_LETTERS = ord("z") - ord("a") + 1
MIN_N_BUCKETS = N_LETTERS

_SHIFT = N_LETTERS.bit_length()
_CODE_LETTERS = 32 // _SHIFT
_LETTERS = frozenset(string.ascii_letters)
_LETTER_BYTES = frozenset(string.ascii_letters.encode("ascii"))
_WORD = re.compile(rb"[A-Za-z]+")
_WHOLE_WORD = re.compile(r"[A-Za-z]+")


def word_code(word: str) -> int:
    """Order-preserving code built from the first six letters of ``word``.

    Each letter takes five bits, the first letter the highest ones, so codes
    sort like the words themselves (ignoring case and anything after the
    sixth letter).
    """
    code = 0
    for position, char in zip(range(_CODE_LETTERS - 1, -1, -1), word):
        if char not in _LETTERS:
            raise ValueError(f"not a letter: {char!r}")
        code |= (ord(char.lower()) - ord("a")) << (position * _SHIFT)
    return code


_CODE_MIN = word_code("a")
_CODE_RANGE = word_code("zzzzzzzzzz") - _CODE_MIN


def bucket_count(n_words: int) -> int:
    """Number of buckets for an expected number of words."""
    return max(min(n_words, MAX_N_WORDS), MIN_N_BUCKETS)


class WordCache:
    """Case-insensitive word counter whose buckets keep alphabetical order."""

    def __init__(self, n_buckets: int = MIN_N_BUCKETS) -> None:
        if n_buckets < 1:
            raise ValueError("n_buckets must be positive")
        self._buckets: list[dict[str, int]] = [{} for _ in range(n_buckets)]

    @property
    def n_buckets(self) -> int:
        """Number of buckets."""
        return len(self._buckets)

    @property
    def used_buckets(self) -> int:
        """Number of buckets that hold at least one word."""
        return sum(1 for bucket in self._buckets if bucket)

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets)

    def _bucket_of(self, word: str) -> dict[str, int]:
        code = word_code(word)
        index = (code - _CODE_MIN) * self.n_buckets // _CODE_RANGE
        return self._buckets[min(index, self.n_buckets - 1)]

    def add(self, word: str, count: int = 1) -> None:
        """Count ``count`` more occurrences of ``word``."""
        if not _WHOLE_WORD.fullmatch(word):
            raise ValueError(f"not a word: {word!r}")
        key = word.lower()
        bucket = self._bucket_of(key)
        bucket[key] = bucket.get(key, 0) + count

    def _bucket_items(self, index: int) -> list[tuple[str, int]]:
        return sorted(
            self._buckets[index].items(), key=lambda item: (word_code(item[0]), item[0])
        )

    def merge(self, other: WordCache, start: int = 0, end: int | None = None) -> None:
        """Add the counts held in buckets ``start`` to ``end`` (exclusive) of ``other``."""
        stop = other.n_buckets if end is None else min(end, other.n_buckets)
        for index in range(max(start, 0), stop):
            for word, count in other._bucket_items(index):
                self.add(word, count)

    def items(self) -> Iterator[tuple[str, int]]:
        """Yield ``(word, count)`` pairs in bucket order, alphabetical within a bucket."""
        for index in range(self.n_buckets):
            yield from self._bucket_items(index)


def _as_bytes(data: bytes | bytearray | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def extract_words(data: bytes | bytearray | str) -> Iterator[str]:
    """Yield the maximal runs of ASCII letters in ``data``."""
    for match in _WORD.finditer(_as_bytes(data)):
        yield match.group().decode("ascii")


def split_slices(data: bytes | bytearray | str, n_threads: int) -> list[tuple[int, int]]:
    """Cut ``data`` into ``n_threads`` ``(start, end)`` slices that split no word.

    Every slice but the first skips the letters it starts in, and every slice
    but the last takes in the letters of the word it ends in.
    """
    if n_threads < 1:
        raise ValueError("n_threads must be positive")
    raw = _as_bytes(data)
    size = len(raw)
    base = size // n_threads
    slices = []
    for tid in range(n_threads):
        last = tid == n_threads - 1
        start = base * tid
        end = start + base + (size % n_threads if last else 0)
        if tid != 0:
            while start < size and raw[start] in _LETTER_BYTES:
                start += 1
        if not last:
            while end < size and raw[end] in _LETTER_BYTES:
                end += 1
        slices.append((start, max(start, end)))
    return slices


def _bucket_ranges(n_buckets: int, n_threads: int) -> list[tuple[int, int]]:
    n_workers = min(n_threads, n_buckets)
    per_worker = n_buckets // n_workers
    ranges = []
    for tid in range(n_workers):
        start = per_worker * tid
        end = start + per_worker
        if tid == n_workers - 1:
            end += n_buckets % n_workers
        ranges.append((start, end))
    return ranges


def count_words(data: bytes | bytearray | str, n_threads: int = 1) -> WordCache:
    """Count the words of ``data`` with ``n_threads`` worker threads."""
    raw = _as_bytes(data)
    slices = split_slices(raw, n_threads)
    n_buckets = bucket_count(len(raw) // MAX_WORD_SIZE)

    def map_slice(bounds: tuple[int, int]) -> WordCache:
        cache = WordCache(n_buckets)
        start, end = bounds
        for word in extract_words(raw[start:end]):
            cache.add(word)
        return cache

    result = WordCache(n_buckets)

    def merge_range(bounds: tuple[int, int]) -> None:
        start, end = bounds
        for cache in caches:
            result.merge(cache, start, end)

    with ThreadPoolExecutor(max_workers=n_threads) as pool:
        caches = list(pool.map(map_slice, slices))
        list(pool.map(merge_range, _bucket_ranges(n_buckets, n_threads)))
    return result


def format_report(cache: WordCache) -> str:
    """One ``word : count`` line per word, then a summary line."""
    lines = []
    total = count_total = 0
    for word, count in cache.items():
        lines.append(f"{word} : {count}")
        total += 1
        count_total += count
    lines.append(
        f"Words: {total}, word counts: {count_total}, "
        f"full buckets: {cache.used_buckets} (ideal {min(total, cache.n_buckets)})"
    )
    return "\n".join(lines) + "\n"


def main(argv: Sequence[str] | None = None) -> int:
    """Count the words of a file: ``FILE_NAME THREAD_NUMBER``."""
    args = list(sys.argv[1:] if argv is None else argv)
    n_threads = 0
    if len(args) >= 2:
        try:
            n_threads = int(args[1])
        except ValueError:
            n_threads = 0
    if len(args) < 2 or n_threads < 1:
        prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "wordcount"
        print("ERROR: Wrong arguments")
        print(f"usage: {prog} FILE_NAME THREAD_NUMBER")
        return 1

    start = time.perf_counter()
    try:
        with open(args[0], "rb") as file:
            data = file.read()
    except OSError as exc:
        print(f"open: {exc}", file=sys.stderr)
        return 1
    cache = count_words(data, n_threads)
    elapsed = (time.perf_counter() - start) * 1000.0

    sys.stdout.write(format_report(cache))
    print(f"Done in {elapsed:g} msec")
    return 0


if __name__ == "__main__":
    sys.exit(main())