"""JSON-RPC gateway exposing read-only blockchain queries over REST."""
