from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass

import boto3

from ddb_py import DB, Context, ddb_field
from ddb_py.scan import Item


@dataclass
class Note:
    pk: str = ddb_field(roles=["hash"])
    sk: str = ddb_field(roles=["range"])
    value: int = ddb_field(default=0)


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    client = _client()
    table_name = f"ddb_py_example_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "pk", "KeyType": "HASH"}, {"AttributeName": "sk", "KeyType": "RANGE"}],
        AttributeDefinitions=[
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        table = DB(client).table(table_name, Note)

        for sk, value in (("001", 1), ("010", 10), ("100", 100)):
            table.put(Note(pk="A", sk=sk, value=value)).run()

        print("get:", table.get("A").range("010").one())

        table.update("A").range("010").add("#value ?", 5).run()

        def show(item: Item[Note]) -> bool:
            print("scan:", item.decode())
            return True

        table.scan().total_segments(2).each(show, ctx=Context.with_timeout(10))
        print("consumed:", table.consumed_capacity())
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
