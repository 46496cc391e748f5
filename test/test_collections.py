from __future__ import annotations

import pytest

from formpost._collections import HTTPHeaderDict


@pytest.fixture()
def d() -> HTTPHeaderDict:
    header_dict = HTTPHeaderDict()
    header_dict["Cookie"] = "sid=abc"
    return header_dict


class TestHTTPHeaderDict:
    def test_setitem(self, d: HTTPHeaderDict) -> None:
        d["cookie"] = "sid=xyz"
        assert d["COOKIE"] == "sid=xyz"
        assert len(d) == 1

    def test_setitem_keeps_latest_casing(self, d: HTTPHeaderDict) -> None:
        d["COOKIE"] = "sid=xyz"
        assert list(d) == ["COOKIE"]

    def test_delitem(self, d: HTTPHeaderDict) -> None:
        del d["cookie"]
        assert "cookie" not in d
        assert "COOKIE" not in d
        assert len(d) == 0

    def test_missing_key(self, d: HTTPHeaderDict) -> None:
        with pytest.raises(KeyError):
            d["x-missing"]

    def test_contains_non_str(self, d: HTTPHeaderDict) -> None:
        assert 1 not in d

    def test_itermerged(self, d: HTTPHeaderDict) -> None:
        d["Content-Type"] = "multipart/form-data; boundary=xyz"
        assert list(d.itermerged()) == [
            ("Cookie", "sid=abc"),
            ("Content-Type", "multipart/form-data; boundary=xyz"),
        ]
