import time
from typing import Callable

from hashids import Hashids

MIN_ID_LENGTH = 6
NANOS_PER_SECOND = 1_000_000_000


class IdGenerationError(Exception):
    pass


class IdGenerator:
    """Short public ids for new uploads, derived from the wall clock.

    The unix seconds are shifted 32 bits left and the nanoseconds within
    the second fill the low bits, then the stamp is obfuscated with Hashids.
    Ids are not checked against existing files.
    """

    def __init__(self, min_length: int = MIN_ID_LENGTH, salt: str = "",
                 clock: Callable[[], int] = time.time_ns):
        self._hashids = Hashids(salt=salt, min_length=min_length)
        self._clock = clock

    def stamp(self) -> int:
        seconds, nanos = divmod(self._clock(), NANOS_PER_SECOND)
        return (seconds << 32) | nanos

    def generate(self) -> str:
        stamp = self.stamp()
        file_id = self._hashids.encode(stamp)
        # Hashids signals unencodable input with an empty string
        if not file_id:
            raise IdGenerationError(f"Could not encode stamp {stamp}")
        return file_id
