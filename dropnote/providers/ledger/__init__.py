"""Ledger clients.

CosmosRestLedgerClient reads blocks and searches transactions through a
node's REST gateway over ``httpx``.  Other transports (websocket, gRPC) can
be added by implementing ILedgerClient without touching the indexer.
"""

from dropnote.providers.ledger.cosmos_rest_provider import CosmosRestLedgerClient, parse_block_time

__all__ = ["CosmosRestLedgerClient", "parse_block_time"]
