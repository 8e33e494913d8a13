from __future__ import annotations

import pytest

from graph_adapters.core import (
    BlastPropagation,
    ErrorType,
    Health,
    Item,
    LinkedItemQuery,
    Query,
    QueryContext,
    QueryError,
    QueryMethod,
    wrap_error,
)


def test_query_error_formats_type_and_message():
    error = QueryError(ErrorType.NOTFOUND, "ecs-cluster prod not found", scope="1.eu-west-1")

    assert str(error) == "NOTFOUND: ecs-cluster prod not found"
    assert error.cacheable is True
    assert QueryError(ErrorType.OTHER, "boom").cacheable is False
    assert QueryError(ErrorType.TIMEOUT, "late").cacheable is False


def test_wrap_error_passes_typed_errors_through():
    original = QueryError(ErrorType.NOSCOPE, "wrong scope")

    wrapped = wrap_error(original, scope="1.eu-west-1", adapter_name="ecs-cluster-adapter")

    assert wrapped is original
    assert wrapped.error_type is ErrorType.NOSCOPE
    assert wrapped.scope == "1.eu-west-1"
    assert wrapped.adapter_name == "ecs-cluster-adapter"


def test_wrap_error_reports_untyped_errors_as_other():
    cause = RuntimeError("throttled")

    wrapped = wrap_error(cause, item_type="ecs-cluster")

    assert wrapped.error_type is ErrorType.OTHER
    assert wrapped.message == "throttled"
    assert wrapped.__cause__ is cause
    assert wrapped.item_type == "ecs-cluster"


def test_background_context_is_never_cancelled():
    context = QueryContext.background()

    assert context.wait(0.01) is False
    assert context.remaining() is None
    context.raise_if_cancelled()


def test_cancel_propagates_to_children():
    parent = QueryContext()
    child = parent.child()
    grandchild = child.with_timeout(60)

    parent.cancel("shutting down")

    assert child.cancelled and grandchild.cancelled
    with pytest.raises(QueryError) as excinfo:
        grandchild.raise_if_cancelled()
    assert excinfo.value.error_type is ErrorType.TIMEOUT


def test_child_of_cancelled_context_starts_cancelled():
    parent = QueryContext()
    parent.cancel()

    assert parent.child().cancelled


def test_with_timeout_expires():
    context = QueryContext().with_timeout(0.01)

    assert context.wait(1.0) is True
    with pytest.raises(QueryError, match="deadline exceeded"):
        context.raise_if_cancelled()


def test_child_deadline_never_outlives_parent():
    parent = QueryContext().with_timeout(5)
    child = parent.with_timeout(60)

    assert child.deadline == parent.deadline


def test_item_requires_unique_attribute_value():
    with pytest.raises(ValueError):
        Item(type="ecs-cluster", unique_attribute="name", attributes={}, scope="1.eu-west-1")
    with pytest.raises(ValueError):
        Item(type="ecs-cluster", unique_attribute="name", attributes={"name": ""}, scope="1.eu-west-1")


def test_item_is_read_only(make_item):
    item = make_item("prod", status="ACTIVE")

    with pytest.raises(TypeError):
        item.attributes["status"] = "INACTIVE"  # type: ignore[index]
    assert item.attributes["status"] == "ACTIVE"


def test_items_are_hashable_by_global_name(make_item):
    first = make_item("prod", status="ACTIVE")
    same = make_item("prod", status="ACTIVE")
    other_scope = make_item("prod", status="ACTIVE", scope="052392120703.us-east-1")

    assert hash(first) == hash(same)
    assert first == same
    assert len({first, same, other_scope}) == 2


def test_item_names_and_reference(make_item):
    item = make_item("prod")

    assert item.unique_attribute_value == "prod"
    assert item.globally_unique_name == "052392120703.eu-west-1.ecs-cluster.prod"
    assert item.reference() == Query(type="ecs-cluster", method=QueryMethod.GET, query="prod", scope="052392120703.eu-west-1")


def test_item_to_dict_includes_links_and_health():
    link = LinkedItemQuery(
        query=Query(type="ecs-service", method=QueryMethod.SEARCH, query="prod", scope="1.eu-west-1"),
        blast_propagation=BlastPropagation(in_=False, out=True),
    )
    item = Item(
        type="ecs-cluster",
        unique_attribute="clusterName",
        attributes={"clusterName": "prod"},
        scope="1.eu-west-1",
        tags={"env": "prod"},
        linked_item_queries=[link],
        health=Health.OK,
    )

    payload = item.to_dict()

    assert payload["health"] == "OK"
    assert payload["tags"] == {"env": "prod"}
    assert payload["linked_item_queries"] == [
        {
            "query": {"type": "ecs-service", "method": "SEARCH", "query": "prod", "scope": "1.eu-west-1"},
            "blast_propagation": {"in": False, "out": True},
        }
    ]
    assert isinstance(item.linked_item_queries, tuple)
