from __future__ import annotations

import pytest

from velocity_cache.cache.errors import CorruptEntryError, SerializationError
from velocity_cache.cache.serialization import decode, encode


class TestEncode:
    def test_keeps_unicode_unescaped(self) -> None:
        assert encode({"name": "Zoë"}) == '{"name": "Zoë"}'

    @pytest.mark.parametrize("value", [object(), {1, 2}, float("inf"), {"nested": [object()]}])
    def test_unencodable_values_raise(self, value: object) -> None:
        with pytest.raises(SerializationError):
            encode(value)


class TestDecode:
    def test_invalid_json_is_corrupt(self) -> None:
        with pytest.raises(CorruptEntryError):
            decode("{truncated")

    def test_tuples_come_back_as_lists(self) -> None:
        assert decode(encode({"pair": (1, 2)})) == {"pair": [1, 2]}
