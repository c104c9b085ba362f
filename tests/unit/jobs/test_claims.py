"""Tests for the single-flight claim table."""

from clipshare.jobs import ClaimTable


class TestClaimTable:
    def test_second_claim_fails(self):
        """Only one holder per key."""
        claims = ClaimTable()
        assert claims.try_claim("r1", "job-a")
        assert not claims.try_claim("r1", "job-b")
        assert claims.owner("r1") == "job-a"
        assert claims.try_claim("r2")

    def test_release_frees_key(self):
        claims = ClaimTable()
        claims.try_claim("r1", "job-a")
        claims.release("r1")
        claims.release("r1")
        assert "r1" not in claims
        assert claims.try_claim("r1", "job-b")

    def test_snapshot_is_a_copy(self):
        claims = ClaimTable()
        claims.try_claim("r1", "job-a")
        claims.try_claim("r2")
        snapshot = claims.snapshot()
        claims.release("r1")
        assert snapshot == {"r1": "job-a", "r2": None}
        assert claims.is_claimed("r2")

    def test_claim_context_releases(self):
        """The context manager releases what it acquired, and only that."""
        claims = ClaimTable()
        with claims.claim("r1", "job-a") as acquired:
            assert acquired
            with claims.claim("r1", "job-b") as nested:
                assert not nested
            assert claims.owner("r1") == "job-a"
        assert len(claims) == 0
