"""Tests for ID generation utilities."""

from concurrent.futures import ThreadPoolExecutor

from hpanel.ids import generate_session_id, is_valid_id, new_id


class TestULIDGeneration:
    """Test ULID generation functionality."""

    def test_new_id_returns_string(self):
        """Test that new_id returns a string."""
        ulid = new_id()
        assert isinstance(ulid, str)
        assert len(ulid) == 26  # ULID length

    def test_session_id_is_valid(self):
        assert is_valid_id(generate_session_id())

    def test_ulid_ordering_rapid_generation(self):
        """IDs stay sorted even within the same millisecond."""
        ulids = [new_id() for _ in range(100)]
        assert ulids == sorted(ulids)

    def test_ulid_uniqueness_across_threads(self):
        with ThreadPoolExecutor(max_workers=4) as pool:
            ulids = list(pool.map(lambda _: new_id(), range(400)))
        assert len(set(ulids)) == len(ulids)


class TestULIDValidation:
    """Test ULID validation."""

    def test_invalid_values(self):
        assert not is_valid_id("")
        assert not is_valid_id("not a ulid!!")
        assert not is_valid_id(None)
        assert not is_valid_id(12345)
