"""Unit tests for auth/passwords.py -- bcrypt hashing and legacy digests.

Covers:
- bcrypt hashes are salted (same password, different hash) and verify
- passwords past bcrypt's 72-byte input limit hash and stay fully significant
- legacy SHA-256 digests from pre-bcrypt releases still verify
- malformed stored hashes never raise
- needs_rehash() flags only legacy digests
"""

import hashlib

from auth.passwords import DUMMY_HASH, hash_password, is_legacy_hash, legacy_digest, needs_rehash, verify_password


class TestBcrypt:
    def test_hash_is_not_plaintext(self):
        assert "secret1" not in hash_password("secret1")

    def test_same_password_hashes_differently(self):
        """Per-hash salt: two hashes of one password must differ."""
        assert hash_password("secret1") != hash_password("secret1")

    def test_correct_password_verifies(self):
        stored = hash_password("secret1")
        assert verify_password("secret1", stored) is True

    def test_wrong_password_fails(self):
        stored = hash_password("secret1")
        assert verify_password("secret2", stored) is False

    def test_unicode_password_round_trips(self):
        stored = hash_password("sécrèt-ça")
        assert verify_password("sécrèt-ça", stored)

    def test_bcrypt_hash_does_not_need_rehash(self):
        assert needs_rehash(hash_password("secret1")) is False

    def test_password_longer_than_72_bytes_verifies(self):
        long_password = "p" * 100
        stored = hash_password(long_password)
        assert verify_password(long_password, stored)

    def test_bytes_after_the_72nd_still_count(self):
        stored = hash_password("x" * 73 + "y")
        assert not verify_password("x" * 73 + "z", stored)

    def test_multibyte_password_over_limit(self):
        """40 two-byte characters encode to 80 bytes."""
        stored = hash_password("é" * 40)
        assert verify_password("é" * 40, stored)

    def test_dummy_hash_is_bcrypt(self):
        assert DUMMY_HASH.startswith("$2")
        assert not verify_password("anything", DUMMY_HASH)


class TestLegacyDigest:
    def test_legacy_digest_matches_sha256_hex(self):
        assert legacy_digest("secret1") == hashlib.sha256(b"secret1").hexdigest()

    def test_legacy_digest_verifies(self):
        assert verify_password("secret1", legacy_digest("secret1"))

    def test_legacy_digest_rejects_wrong_password(self):
        assert not verify_password("wrong", legacy_digest("secret1"))

    def test_legacy_digest_needs_rehash(self):
        assert needs_rehash(legacy_digest("secret1"))

    def test_uppercase_hex_is_not_treated_as_legacy(self):
        """Pre-bcrypt releases always wrote lowercase hex."""
        assert not is_legacy_hash(legacy_digest("secret1").upper())


class TestMalformed:
    def test_garbage_hash_returns_false(self):
        assert verify_password("secret1", "not-a-hash") is False

    def test_empty_hash_returns_false(self):
        assert verify_password("secret1", "") is False
