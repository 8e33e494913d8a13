from __future__ import annotations

import pytest

from graph_adapters.core import ErrorType, IdentifierParseError, QueryError, format_scope, parse_identifier, validate_scope


def test_parse_task_definition_identifier():
    identifier = parse_identifier("scheme:aws:ecs:eu-west-1:052392120703:task-definition/app:1")

    assert identifier.scheme == "scheme"
    assert identifier.partition == "aws"
    assert identifier.service == "ecs"
    assert identifier.account_id == "052392120703"
    assert identifier.region == "eu-west-1"
    assert identifier.resource == "task-definition/app:1"
    assert identifier.resource_type == "task-definition"
    assert identifier.resource_id == "app:1"
    assert identifier.scope == "052392120703.eu-west-1"
    assert str(identifier) == "scheme:aws:ecs:eu-west-1:052392120703:task-definition/app:1"


def test_parse_identifier_with_colon_separated_resource():
    identifier = parse_identifier("arn:aws:lambda:us-east-1:123456789012:function:my-function")

    assert identifier.resource_type == "function"
    assert identifier.resource_id == "my-function"


def test_parse_identifier_without_region_or_account():
    identifier = parse_identifier("arn:aws:s3:::my-bucket")

    assert identifier.region == ""
    assert identifier.account_id == ""
    assert identifier.resource_type == ""
    assert identifier.resource_id == "my-bucket"


@pytest.mark.parametrize(
    "value",
    [
        "",
        "not-an-identifier",
        "arn:aws:ecs:eu-west-1:123",
        ":aws:ecs:eu-west-1:123:cluster/prod",
        "arn::ecs:eu-west-1:123:cluster/prod",
        "arn:aws::eu-west-1:123:cluster/prod",
        "arn:aws:ecs:eu-west-1:123:",
    ],
)
def test_parse_identifier_rejects_malformed_values(value):
    with pytest.raises(IdentifierParseError):
        parse_identifier(value)


def test_parse_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_identifier("a:b")


def test_format_scope():
    assert format_scope("123456789012", "eu-west-1") == "123456789012.eu-west-1"
    assert format_scope("123456789012", "") == "123456789012"
    assert format_scope("123456789012") == "123456789012"


def test_validate_scope_rejects_mismatch():
    validate_scope("1.eu-west-1", "1.eu-west-1")

    with pytest.raises(QueryError) as excinfo:
        validate_scope("2.eu-west-1", "1.eu-west-1")

    assert excinfo.value.error_type is ErrorType.NOSCOPE
    assert "2.eu-west-1" in excinfo.value.message
