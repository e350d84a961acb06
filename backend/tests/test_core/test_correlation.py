"""Tests for correlation ID generation and scoping."""

import re
from concurrent.futures import ThreadPoolExecutor

from core.correlation import (
    correlation_id_var,
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


class TestGenerateCorrelationId:
    """Tests for generate_correlation_id function."""

    def test_returns_hex_string(self) -> None:
        """Correlation ID should be 8 hexadecimal characters."""
        assert re.match(r"^[0-9a-f]{8}$", generate_correlation_id())

    def test_generates_unique_ids(self) -> None:
        ids = {generate_correlation_id() for _ in range(1000)}
        assert len(ids) == 1000


class TestCorrelationScope:
    """Tests for correlation_scope."""

    def setup_method(self) -> None:
        correlation_id_var.set("")

    def test_generates_id_when_none_set(self) -> None:
        """A message handled outside a request gets its own ID."""
        with correlation_scope() as correlation_id:
            assert len(correlation_id) == 8
            assert get_correlation_id() == correlation_id
        assert get_correlation_id() == ""

    def test_reuses_request_id(self) -> None:
        """Inside an HTTP request the pipeline logs under the request's ID."""
        set_correlation_id("request1")

        with correlation_scope() as correlation_id:
            assert correlation_id == "request1"

        assert get_correlation_id() == "request1"

    def test_explicit_id_wins_and_is_restored(self) -> None:
        set_correlation_id("outer")

        with correlation_scope("inner") as correlation_id:
            assert correlation_id == "inner"
            assert get_correlation_id() == "inner"

        assert get_correlation_id() == "outer"

    def test_restored_after_exception(self) -> None:
        set_correlation_id("outer")

        try:
            with correlation_scope("inner"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert get_correlation_id() == "outer"

    def test_threads_do_not_share_ids(self) -> None:
        """Messages handled in parallel keep separate IDs."""

        def handle(_: int) -> tuple[str, str]:
            with correlation_scope() as correlation_id:
                return correlation_id, get_correlation_id()

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(handle, range(20)))

        assert all(scoped == seen for scoped, seen in results)
        assert len({scoped for scoped, _ in results}) == 20
