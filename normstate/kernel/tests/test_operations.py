"""
Tests for operation builders and dispatch binding.
"""

from normstate.kernel.operations import bind_operations, make_operations
from normstate.kernel.types import Operation, OperationKind


class TestMakeOperations:
    def test_every_builder_tags_kind_and_schema(self):
        ops = make_operations("todos")
        built = {
            "populate": ops.populate([{"id": 1}]),
            "insert": ops.insert({"id": 1}),
            "update": ops.update({"id": 1}),
            "delete": ops.delete(1),
            "replace": ops.replace({"id": 1}),
            "upsert": ops.upsert({"id": 1}),
        }
        for name, op in built.items():
            assert op.kind is OperationKind[name.upper()]
            assert op.schema == "todos"

    def test_payloads(self):
        ops = make_operations("todos")
        assert ops.insert({"id": 1, "text": "a"}).payload == {"id": 1, "text": "a"}
        assert ops.delete(7).payload == 7
        assert ops.populate([{"id": 1}, {"id": 2}]).payload == ({"id": 1}, {"id": 2})

    def test_no_validation_at_build_time(self):
        # Shape only; the reducer decides what a bad payload means
        op = make_operations("todos").insert({"text": "no id"})
        assert op.payload == {"text": "no id"}

    def test_names(self):
        assert make_operations("todos").names() == (
            "populate", "insert", "update", "delete", "replace", "upsert",
        )

    def test_operations_are_values(self):
        ops = make_operations("todos")
        assert ops.delete(1) == ops.delete(1)
        assert ops.delete(1) != make_operations("users").delete(1)

    def test_to_dict_wire_shape(self):
        op = make_operations("todos").populate([{"id": 1}])
        assert op.to_dict() == {"type": "POPULATE", "schema": "todos", "payload": [{"id": 1}]}


class TestBindOperations:
    def test_each_builder_goes_through_sender(self):
        sent = []

        def sender(op):
            sent.append(op)
            return f"sent-{len(sent)}"

        bound = bind_operations("todos", sender)
        assert bound.insert({"id": 1}) == "sent-1"
        assert bound.update({"id": 1, "done": True}) == "sent-2"
        assert bound.delete(1) == "sent-3"
        assert bound.populate([]) == "sent-4"
        assert bound.replace({"id": 2}) == "sent-5"
        assert bound.upsert({"id": 3}) == "sent-6"

        assert [op.kind for op in sent] == [
            OperationKind.INSERT,
            OperationKind.UPDATE,
            OperationKind.DELETE,
            OperationKind.POPULATE,
            OperationKind.REPLACE,
            OperationKind.UPSERT,
        ]
        assert all(op.schema == "todos" for op in sent)

    def test_sender_receives_operation(self):
        received = []
        bind_operations("users", received.append).insert({"id": "u1"})
        assert received == [Operation(OperationKind.INSERT, "users", {"id": "u1"})]

    def test_schema_exposed(self):
        assert bind_operations("todos", print).schema == "todos"
