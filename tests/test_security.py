"""Signer: access token minting/verification and refresh credential helpers."""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from models.user import ROLE_VALUES
from utils.security import (
    AudienceMismatch,
    InvalidSignature,
    IssuerMismatch,
    SecretsInvalid,
    Signer,
    TokenExpired,
    hash_password,
    verify_password,
)

ACCESS_SECRET = "a" * 32 + "-access"
REFRESH_SECRET = "r" * 32 + "-refresh"


def make_signer(**overrides):
    params = dict(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        issuer="luxsuv-api",
        audience="luxsuv-clients",
        access_ttl=timedelta(minutes=15),
        roles=ROLE_VALUES,
    )
    params.update(overrides)
    return Signer(**params)


def _claims(signer, token):
    return jwt.decode(
        token, ACCESS_SECRET, algorithms=["HS256"], audience=signer.audience, issuer=signer.issuer
    )


class TestAccessTokens:
    def test_mint_then_verify_returns_subject_and_role(self):
        signer = make_signer()
        token, expires_at = signer.mint_access("user-1", "driver")

        claims = signer.verify_access(token)

        assert claims.user_id == "user-1"
        assert claims.role == "driver"
        assert claims.token_id
        assert claims.expires_at == expires_at

    def test_expiry_is_bounded_by_access_ttl(self):
        signer = make_signer()
        token, expires_at = signer.mint_access("user-1", "rider")
        payload = _claims(signer, token)
        assert payload["exp"] - payload["iat"] == 15 * 60
        assert expires_at <= datetime.now(timezone.utc) + timedelta(minutes=15)

    def test_each_token_has_a_distinct_id(self):
        signer = make_signer()
        first = signer.verify_access(signer.mint_access("u", "rider")[0])
        second = signer.verify_access(signer.mint_access("u", "rider")[0])
        assert first.token_id != second.token_id

    def test_flipped_signature_byte_fails(self):
        signer = make_signer()
        token, _ = signer.mint_access("user-1", "rider")
        header, payload, signature = token.split(".")
        flipped = signature[:10] + ("A" if signature[10] != "A" else "B") + signature[11:]

        with pytest.raises(InvalidSignature):
            signer.verify_access(f"{header}.{payload}.{flipped}")

    def test_token_signed_with_other_key_fails(self):
        other = make_signer(access_secret="z" * 40)
        token, _ = other.mint_access("user-1", "admin")
        with pytest.raises(InvalidSignature):
            make_signer().verify_access(token)

    def test_refresh_secret_cannot_sign_access_tokens(self):
        signer = make_signer()
        payload = {
            "sub": "user-1", "role": "admin", "iss": signer.issuer, "aud": signer.audience,
            "iat": datetime.now(timezone.utc), "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            "jti": "x",
        }
        token = jwt.encode(payload, REFRESH_SECRET, algorithm="HS256")
        with pytest.raises(InvalidSignature):
            signer.verify_access(token)

    def test_wrong_issuer_fails(self):
        token, _ = make_signer(issuer="someone-else").mint_access("user-1", "rider")
        with pytest.raises(IssuerMismatch):
            make_signer().verify_access(token)

    def test_wrong_audience_fails(self):
        token, _ = make_signer(audience="other-clients").mint_access("user-1", "rider")
        with pytest.raises(AudienceMismatch):
            make_signer().verify_access(token)

    @pytest.mark.parametrize("algorithm", ["HS384", "HS512", "none"])
    def test_algorithm_substitution_fails(self, algorithm):
        signer = make_signer()
        payload = _claims(signer, signer.mint_access("user-1", "admin")[0])
        key = None if algorithm == "none" else ACCESS_SECRET
        forged = jwt.encode(payload, key, algorithm=algorithm)

        with pytest.raises(InvalidSignature):
            signer.verify_access(forged)

    def test_expired_token_fails_with_expired_only(self):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token, expires_at = make_signer(clock=lambda: past).mint_access("user-1", "rider")
        assert expires_at < datetime.now(timezone.utc)

        with pytest.raises(TokenExpired):
            make_signer().verify_access(token)

    def test_unknown_role_claim_is_rejected(self):
        token, _ = make_signer().mint_access("user-1", "superuser")
        with pytest.raises(InvalidSignature):
            make_signer().verify_access(token)

    def test_missing_claims_are_rejected(self):
        signer = make_signer()
        payload = _claims(signer, signer.mint_access("user-1", "rider")[0])
        del payload["jti"]
        token = jwt.encode(payload, ACCESS_SECRET, algorithm="HS256")
        with pytest.raises(InvalidSignature):
            signer.verify_access(token)

    @pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
    def test_garbage_is_invalid(self, garbage):
        with pytest.raises(InvalidSignature):
            make_signer().verify_access(garbage)


class TestSecrets:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"access_secret": "short"},
            {"refresh_secret": "x" * 31},
            {"access_secret": ""},
            {"refresh_secret": ACCESS_SECRET},
        ],
    )
    def test_weak_or_shared_secrets_refuse_construction(self, overrides):
        with pytest.raises(SecretsInvalid):
            make_signer(**overrides)

    def test_minimum_length_is_measured_in_bytes(self):
        # 16 two-byte characters
        make_signer(access_secret="é" * 16)

    def test_create_app_refuses_to_start_without_secrets(self, tmp_path):
        from api import create_app

        with pytest.raises(SecretsInvalid):
            create_app("testing", overrides={
                "DATABASE_URL": f"sqlite:///{tmp_path / 'x.db'}",
                "JWT_ACCESS_SECRET": "too-short",
            })


class TestRefreshValues:
    def test_values_are_random_and_high_entropy(self):
        signer = make_signer()
        values = {signer.mint_refresh_value() for _ in range(50)}
        assert len(values) == 50
        assert all(len(v) >= 43 for v in values)
        assert all(v.count(".") == 0 for v in values)

    def test_hash_is_deterministic_and_not_the_value(self):
        signer = make_signer()
        value = signer.mint_refresh_value()
        digest = signer.hash_refresh_value(value)
        assert digest == signer.hash_refresh_value(value)
        assert value not in digest
        assert len(digest) == 64

    def test_hash_depends_on_refresh_secret(self):
        value = "same-value"
        assert make_signer().hash_refresh_value(value) != make_signer(
            refresh_secret="q" * 40
        ).hash_refresh_value(value)


class TestPasswords:
    def test_hash_and_verify(self):
        pw_hash = hash_password("correct horse")
        assert verify_password("correct horse", pw_hash)
        assert not verify_password("wrong horse", pw_hash)

    def test_garbage_hash_does_not_raise(self):
        assert verify_password("anything", "not-an-argon2-hash") is False
