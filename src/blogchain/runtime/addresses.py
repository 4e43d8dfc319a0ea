from __future__ import annotations

import re
from dataclasses import dataclass

from blogchain.runtime.errors import ApplyError

DEFAULT_ADDRESS_PREFIX = "blog"


@dataclass(frozen=True)
class AddressCodec:
    """Shape check for account identity strings: `<prefix>1<data>`.

    Only the human readable prefix and the data charset are checked; checksum
    verification belongs to the host runtime.
    """

    prefix: str = DEFAULT_ADDRESS_PREFIX
    min_data_len: int = 6
    max_data_len: int = 90

    def _pattern(self) -> "re.Pattern[str]":
        return re.compile(rf"^{re.escape(self.prefix)}1[0-9a-z]{{{self.min_data_len},{self.max_data_len}}}$")

    def is_valid(self, address: str) -> bool:
        if not isinstance(address, str):
            return False
        return self._pattern().match(address) is not None

    def validate(self, address: str, *, field: str = "address") -> str:
        if not self.is_valid(address):
            raise ApplyError.invalid_argument(f"invalid {field}", {field: address, "prefix": self.prefix})
        return address
