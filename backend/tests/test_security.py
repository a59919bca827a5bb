"""
NoteDigest Backend: Bearer Token Verification Tests
===================================================

What we test:
    ✅ Valid HS256 token yields a Principal with uid/email
    ✅ Expired, forged and subject-less tokens are rejected
    ✅ Audience and issuer are enforced when configured
    ✅ RS256 verification with a PEM public key
    ✅ A verifier without a key rejects everything
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from notedigest.config import Settings
from notedigest.exceptions import AuthenticationError
from notedigest.security import TokenVerifier

SECRET = "test-jwt-secret-not-real"


class TestTokenVerifier:

    def setup_method(self):
        self.verifier = TokenVerifier(key=SECRET)

    def test_valid_token(self, token_factory):
        principal = self.verifier.verify(token_factory("user-a", email="a@example.com"))

        assert principal.uid == "user-a"
        assert principal.email == "a@example.com"

    def test_user_id_claim_fallback(self, token_factory):
        principal = self.verifier.verify(token_factory(uid=None, user_id="legacy-uid"))
        assert principal.uid == "legacy-uid"

    def test_expired_token(self, token_factory):
        with pytest.raises(AuthenticationError) as exc_info:
            self.verifier.verify(token_factory("user-a", expires_in=-60))
        assert exc_info.value.context["reason"] == "invalid_token"

    def test_wrong_secret(self, token_factory):
        with pytest.raises(AuthenticationError):
            self.verifier.verify(token_factory("user-a", secret="another-secret"))

    def test_garbage_token(self):
        with pytest.raises(AuthenticationError):
            self.verifier.verify("not.a.jwt")

    def test_missing_subject(self, token_factory):
        with pytest.raises(AuthenticationError) as exc_info:
            self.verifier.verify(token_factory(uid=None))
        assert exc_info.value.context["reason"] == "missing_subject"

    def test_audience_and_issuer_enforced(self, token_factory):
        verifier = TokenVerifier(key=SECRET, audience="notedigest", issuer="https://issuer.test")

        good = token_factory("user-a", aud="notedigest", iss="https://issuer.test")
        assert verifier.verify(good).uid == "user-a"

        with pytest.raises(AuthenticationError):
            verifier.verify(token_factory("user-a", aud="someone-else", iss="https://issuer.test"))
        with pytest.raises(AuthenticationError):
            verifier.verify(token_factory("user-a", aud="notedigest", iss="https://evil.test"))

    def test_unconfigured_verifier_rejects(self, token_factory):
        with pytest.raises(AuthenticationError) as exc_info:
            TokenVerifier(key="").verify(token_factory("user-a"))
        assert exc_info.value.context["reason"] == "verifier_not_configured"


class TestAsymmetricVerification:

    def test_rs256_with_public_key_from_settings(self):
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

        # Env-style escaping: newlines arrive as literal "\n"
        source = Settings(
            auth_jwt_algorithm="RS256",
            auth_jwt_public_key=public_pem.replace("\n", "\\n"),
        )
        verifier = TokenVerifier.from_settings(source)
        token = jwt.encode({"sub": "firebase-uid"}, private_pem, algorithm="RS256")

        assert verifier.key == public_pem
        assert verifier.verify(token).uid == "firebase-uid"
