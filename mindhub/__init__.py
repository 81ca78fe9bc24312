"""Per-user record storage over a DynamoDB-style table, with test builders and an in-process GraphQL client."""

__version__ = "0.1.0"