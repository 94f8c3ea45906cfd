from __future__ import annotations

from dataclasses import dataclass

import pytest

from ddb_py import Table, ddb_field
from ddb_py.errors import InvalidExpressionError
from ddb_py.mocks import FakeDynamoDBClient
from ddb_py.testkit import consumed


@dataclass
class Note:
    pk: str = ddb_field(roles=["hash"])
    sk: str = ddb_field(roles=["range"])
    value: int = ddb_field(default=0)


def test_put_run_encodes_record_and_records_write_capacity() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "put_item",
        {
            "TableName": "notes",
            "Item": {"pk": {"S": "A"}, "sk": {"S": "B"}, "value": {"N": "1"}},
            "ConditionExpression": "attribute_not_exists(#n1)",
            "ExpressionAttributeNames": {"#n1": "pk"},
            "ReturnConsumedCapacity": "TOTAL",
        },
        response={"ConsumedCapacity": consumed(1.0)},
    )
    table = Table(Note, table_name="notes", client=client)

    table.put(Note(pk="A", sk="B", value=1)).condition("attribute_not_exists(#pk)").run()

    client.assert_no_pending()
    assert table.consumed_capacity().write_units == 1.0


def test_put_tx_omits_consumed_capacity() -> None:
    table = Table(Note, table_name="notes", client=FakeDynamoDBClient())
    tx = table.put(Note(pk="A", sk="B")).tx()
    assert set(tx) == {"Put"}
    assert set(tx["Put"]) == {"TableName", "Item"}
    assert tx["Put"]["Item"]["pk"] == {"S": "A"}


def test_put_keeps_first_condition_error() -> None:
    table = Table(Note, table_name="notes", client=FakeDynamoDBClient())
    put = table.put(Note(pk="A", sk="B")).condition("#nope = ?", 1)
    with pytest.raises(InvalidExpressionError, match="unknown attribute"):
        put.put_item_input()
