import logging
import os
from dataclasses import dataclass
from typing import Optional

# conventional id bound limit of SPIR-V optimizers; the binary format
# allows up to 2**32 - 1 but drivers commonly reject anything larger.
DEFAULT_MAX_ID_BOUND = 0x3FFFFF

SPVGUARD_MAX_ID_BOUND = int(os.environ.get("SPVGUARD_MAX_ID_BOUND", str(DEFAULT_MAX_ID_BOUND)))
SPVGUARD_LOG_LEVEL = os.environ.get("SPVGUARD_LOG_LEVEL", "WARNING").upper()

# identifiers are 32-bit words
MAX_ID_WORD = 2**32 - 1


def log_level_from_string(val: str) -> int:
    level = logging.getLevelName(val.upper())
    if not isinstance(level, int):
        raise ValueError(f"unrecognized log level: {val}")
    return level


@dataclass
class Settings:
    max_id_bound: Optional[int] = None
    validate: Optional[bool] = None

    def __post_init__(self):
        # sanity check inputs
        if self.max_id_bound is not None:
            assert isinstance(self.max_id_bound, int)
            assert 0 < self.max_id_bound <= MAX_ID_WORD, self.max_id_bound
        if self.validate is not None:
            assert isinstance(self.validate, bool)

    def get_max_id_bound(self) -> int:
        if self.max_id_bound is None:
            return SPVGUARD_MAX_ID_BOUND
        return self.max_id_bound

    def get_validate(self) -> bool:
        if self.validate is None:
            return False
        return self.validate

