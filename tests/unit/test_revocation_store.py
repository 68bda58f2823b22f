"""
Unit tests for InMemoryRevocationStore.
"""

from datetime import timedelta

from src.adapters.revocation.memory import InMemoryRevocationStore


class TestRevocationStore:
    def test_added_id_is_contained(self, revocations: InMemoryRevocationStore, clock) -> None:
        revocations.add("abc", clock() + timedelta(hours=1))

        assert revocations.contains("abc")
        assert not revocations.contains("def")

    def test_expired_entries_pruned_on_add(self, revocations, clock) -> None:
        revocations.add("old", clock() + timedelta(minutes=1))
        clock.advance(120)
        revocations.add("new", clock() + timedelta(minutes=1))

        assert not revocations.contains("old")
        assert revocations.contains("new")
        assert len(revocations) == 1

    def test_unexpired_entries_kept(self, revocations, clock) -> None:
        revocations.add("a", clock() + timedelta(hours=1))
        clock.advance(60)
        revocations.add("b", clock() + timedelta(hours=1))

        assert len(revocations) == 2
