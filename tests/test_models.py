"""
Unit tests for response models.
"""

import datetime

import pytest

from communication_identity import AccessToken, CommunicationError, IdentityTokenResult
from communication_identity.models import parse_error_envelope, parse_timestamp

UTC = datetime.timezone.utc


class TestParseTimestamp:

    def test_zulu(self):
        assert parse_timestamp("2025-01-01T00:00:00Z") == datetime.datetime(2025, 1, 1, tzinfo=UTC)

    def test_offset(self):
        moment = parse_timestamp("2025-01-01T02:00:00+02:00")
        assert moment == datetime.datetime(2025, 1, 1, tzinfo=UTC)

    def test_seven_fraction_digits(self):
        moment = parse_timestamp("2025-06-30T12:00:00.1234567+00:00")
        assert moment == datetime.datetime(2025, 6, 30, 12, 0, 0, 123456, tzinfo=UTC)

    @pytest.mark.parametrize("value, microsecond", [
        ("2025-06-30T12:00:00.2+00:00", 200000),
        ("2025-06-30T12:00:00.23065+00:00", 230650),
        ("2025-06-30T12:00:00.2306512Z", 230651),
    ])
    def test_any_fraction_length(self, value, microsecond):
        moment = parse_timestamp(value)
        assert moment == datetime.datetime(2025, 6, 30, 12, 0, 0, microsecond, tzinfo=UTC)

    def test_naive_is_utc(self):
        assert parse_timestamp("2025-01-01T00:00:00").tzinfo == UTC

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")

    def test_not_a_string(self):
        with pytest.raises(TypeError):
            parse_timestamp(12345)


class TestAccessToken:

    def test_from_dict(self):
        token = AccessToken.from_dict({"token": "abc", "expiresOn": "2025-01-01T00:00:00Z"})

        assert token == AccessToken(token="abc", expires_on=datetime.datetime(2025, 1, 1, tzinfo=UTC))

    def test_missing_field(self):
        with pytest.raises(KeyError):
            AccessToken.from_dict({"token": "abc"})

    def test_wrong_type(self):
        with pytest.raises(TypeError):
            AccessToken.from_dict({"token": 1, "expiresOn": "2025-01-01T00:00:00Z"})


class TestIdentityTokenResult:

    def test_with_token(self):
        result = IdentityTokenResult.from_dict({
            "identity": {"id": "8:acs:resource_user"},
            "accessToken": {"token": "tok", "expiresOn": "2025-01-01T00:00:00Z"},
        })

        assert result.identity_id == "8:acs:resource_user"
        assert result.access_token.token == "tok"

    def test_without_token(self):
        result = IdentityTokenResult.from_dict({"identity": {"id": "8:acs:resource_user"}})

        assert result.access_token is None

    def test_missing_identity(self):
        with pytest.raises(KeyError):
            IdentityTokenResult.from_dict({"accessToken": {"token": "t", "expiresOn": "2025-01-01T00:00:00Z"}})


class TestCommunicationError:

    @pytest.fixture
    def tree(self):
        return {
            "code": "BadRequest",
            "message": "invalid input",
            "target": "scopes",
            "details": [
                {"code": "InvalidScope", "message": "unknown scope 'foo'"},
                {"code": "InvalidScope", "message": "unknown scope 'bar'", "target": "scopes[1]"},
            ],
            "innererror": {
                "code": "ScopeValidation",
                "message": "validation failed",
                "innererror": {"code": "Deep", "message": "deepest"},
            },
        }

    def test_from_dict_tree(self, tree):
        error = CommunicationError.from_dict(tree)

        assert error.code == "BadRequest"
        assert error.target == "scopes"
        assert len(error.details) == 2
        assert error.details[1].target == "scopes[1]"
        assert error.innererror.code == "ScopeValidation"
        assert error.innererror.innererror.message == "deepest"
        assert error.innererror.innererror.innererror is None

    def test_minimal(self):
        error = CommunicationError.from_dict({"code": "Unauthorized", "message": "bad signature"})

        assert error == CommunicationError(code="Unauthorized", message="bad signature")
        assert str(error) == "Unauthorized - bad signature"

    def test_render(self, tree):
        rendered = str(CommunicationError.from_dict(tree))

        assert rendered.splitlines() == [
            "[target:scopes]BadRequest - invalid input",
            "details:",
            "  InvalidScope - unknown scope 'foo'",
            "  [target:scopes[1]]InvalidScope - unknown scope 'bar'",
            "inner error:",
            "  ScopeValidation - validation failed",
            "  inner error:",
            "    Deep - deepest",
        ]

    def test_details_must_be_list(self):
        with pytest.raises(TypeError):
            CommunicationError.from_dict({"code": "X", "message": "y", "details": "nope"})


class TestErrorEnvelope:

    def test_valid(self):
        error = parse_error_envelope({"error": {"code": "Unauthorized", "message": "bad signature"}})
        assert error.code == "Unauthorized"

    @pytest.mark.parametrize("body", [None, [], "text", {}, {"error": "string"}])
    def test_invalid(self, body):
        with pytest.raises(ValueError):
            parse_error_envelope(body)
