from collections.abc import Iterator, Sequence


def chunk[T](items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split a sequence into consecutive chunks of a given size. The last chunk may be shorter."""

    if size < 1:
        msg = f"Chunk size must be at least 1, got {size}"
        raise ValueError(msg)

    for start in range(0, len(items), size):
        yield list(items[start : start + size])
