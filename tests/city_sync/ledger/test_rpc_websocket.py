"""Tests for ledger subscriptions over a live local websocket."""

from __future__ import annotations

import asyncio
import base64
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
from aiohttp import test_utils, web

from city_sync.codec import encode_account
from city_sync.delegation import DelegationStatus
from city_sync.keys import CITY_PROGRAM_ID
from city_sync.ledger import AccountInfo, Commitment, LedgerError, LedgerKind, RpcLedgerConnection
from city_sync.sync import DualLedgerAccountSync
from tests.city_sync.helpers import FakeLedger, make_city, make_pubkey

ADDRESS = make_pubkey(4)
STORED = encode_account(make_city(last_updated=50))
"""What the HTTP side returns for `getAccountInfo`."""


def account_value(data: bytes) -> dict[str, Any]:
    """An RPC account object."""
    return {
        "data": [base64.b64encode(data).decode(), "base64"],
        "owner": str(CITY_PROGRAM_ID),
        "lamports": 5,
        "executable": False,
    }


class LedgerSocketServer:
    """
    A local websocket endpoint speaking the subscription half of JSON-RPC.

    Subscription ids count up from 100 across sockets, like a restarted node.
    """

    def __init__(self) -> None:
        """Initialize with no sockets and answering enabled."""
        self.requests: list[dict[str, Any]] = []
        self.sockets: list[web.WebSocketResponse] = []
        self.answer = True
        self.stored = STORED
        self._next_id = 100

        app = web.Application()
        app.router.add_get("/", self._handle)
        self.server = test_utils.TestServer(app)

    @property
    def ws_url(self) -> str:
        """The websocket URL of the running server."""
        return str(self.server.make_url("/")).replace("http://", "ws://", 1)

    def methods(self) -> list[str]:
        """Methods received so far, in order."""
        return [request["method"] for request in self.requests]

    async def _handle(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.sockets.append(ws)
        async for msg in ws:
            body = json.loads(msg.data)
            self.requests.append(body)
            if not self.answer:
                continue
            result: Any = True
            if body["method"] == "accountSubscribe":
                result = self._next_id
                self._next_id += 1
            await ws.send_json({"jsonrpc": "2.0", "id": body["id"], "result": result})
        return ws

    async def notify(self, subscription: int, data: bytes) -> None:
        """Push an account notification on the newest socket."""
        await self.sockets[-1].send_json(
            {
                "jsonrpc": "2.0",
                "method": "accountNotification",
                "params": {
                    "subscription": subscription,
                    "result": {"context": {"slot": 1}, "value": account_value(data)},
                },
            }
        )

    async def drop(self) -> None:
        """Close the newest socket from the server side."""
        await self.sockets[-1].close()

    def answer_read(self, request: httpx.Request) -> httpx.Response:
        """HTTP side: every account read returns the stored city."""
        body = json.loads(request.content)
        assert body["method"] == "getAccountInfo"
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": body["id"],
                "result": {"context": {"slot": 1}, "value": account_value(self.stored)},
            },
        )


async def until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Wait until a condition holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


@pytest.fixture
async def ledger_server() -> AsyncIterator[LedgerSocketServer]:
    """A running local websocket endpoint."""
    server = LedgerSocketServer()
    await server.server.start_server()
    yield server
    await server.server.close()


def connect(ledger_server: LedgerSocketServer, **kwargs: Any) -> RpcLedgerConnection:
    """A connection to the local endpoint with canned HTTP reads."""
    connection = RpcLedgerConnection(
        kind=LedgerKind.BASE,
        rpc_url="http://ledger.test",
        ws_url=ledger_server.ws_url,
        **kwargs,
    )
    connection._http = httpx.AsyncClient(transport=httpx.MockTransport(ledger_server.answer_read))
    return connection


@pytest.fixture
async def connection(ledger_server: LedgerSocketServer) -> AsyncIterator[RpcLedgerConnection]:
    """A connection that retries restores quickly."""
    connection = connect(ledger_server, request_timeout=2.0, reconnect_delay=0.01)
    yield connection
    await connection.close()


class TestSubscriptions:
    """Subscribe, notify, unsubscribe."""

    async def test_notification_reaches_listener(
        self, ledger_server: LedgerSocketServer, connection: RpcLedgerConnection
    ) -> None:
        """A pushed account arrives at the listener of its subscription."""
        received: list[AccountInfo] = []

        async def listener(info: AccountInfo) -> None:
            received.append(info)

        await connection.subscribe_account(ADDRESS, listener)

        assert ledger_server.requests[0]["method"] == "accountSubscribe"
        assert ledger_server.requests[0]["params"] == [
            str(ADDRESS),
            {"encoding": "base64", "commitment": Commitment.CONFIRMED.value},
        ]

        pushed = encode_account(make_city(last_updated=9))
        await ledger_server.notify(100, pushed)
        await until(lambda: len(received) == 1)

        assert received[0].data == pushed
        assert received[0].owner == CITY_PROGRAM_ID

    async def test_unsubscribe_stops_delivery(
        self, ledger_server: LedgerSocketServer, connection: RpcLedgerConnection
    ) -> None:
        """The server id is released and later pushes are dropped."""
        received: list[AccountInfo] = []

        async def listener(info: AccountInfo) -> None:
            received.append(info)

        subscription_id = await connection.subscribe_account(ADDRESS, listener)
        await connection.unsubscribe_account(subscription_id)

        assert ledger_server.requests[-1]["method"] == "accountUnsubscribe"
        assert ledger_server.requests[-1]["params"] == [100]

        await ledger_server.notify(100, STORED)
        await asyncio.sleep(0.05)
        assert received == []


class TestTransportFailures:
    """Socket failures surface as ledger errors."""

    async def test_unreachable_endpoint(self) -> None:
        """A refused connection is a LedgerError, not a raw client error."""
        connection = RpcLedgerConnection(LedgerKind.ROLLUP, "http://x", "ws://127.0.0.1:1")

        async def listener(info: AccountInfo) -> None:
            return None

        try:
            with pytest.raises(LedgerError, match="Cannot open rollup ledger websocket"):
                await connection.subscribe_account(ADDRESS, listener)
        finally:
            await connection.close()

        assert not connection._subscriptions

    async def test_unanswered_request_times_out(self, ledger_server: LedgerSocketServer) -> None:
        """A request with no response fails after the request timeout."""
        ledger_server.answer = False
        connection = connect(ledger_server, request_timeout=0.1)

        async def listener(info: AccountInfo) -> None:
            return None

        try:
            with pytest.raises(LedgerError, match="timed out"):
                await connection.subscribe_account(ADDRESS, listener)
        finally:
            await connection.close()

        assert not connection._subscriptions

    async def test_closed_socket_fails_waiting_request(
        self, ledger_server: LedgerSocketServer, connection: RpcLedgerConnection
    ) -> None:
        """A request in flight when the server hangs up fails instead of waiting out its timeout."""
        ledger_server.answer = False

        async def listener(info: AccountInfo) -> None:
            return None

        request = asyncio.create_task(connection.subscribe_account(ADDRESS, listener))
        await until(lambda: len(ledger_server.requests) == 1)
        await ledger_server.drop()

        with pytest.raises(LedgerError, match="websocket closed"):
            await request
        assert not connection._subscriptions


class TestReconnect:
    """Subscriptions outlive a dropped socket."""

    async def test_dropped_socket_restores_subscription(
        self, ledger_server: LedgerSocketServer, connection: RpcLedgerConnection
    ) -> None:
        """The subscription is re-issued, the account re-read, and pushes resume."""
        received: list[AccountInfo] = []

        async def listener(info: AccountInfo) -> None:
            received.append(info)

        subscription_id = await connection.subscribe_account(ADDRESS, listener)
        await ledger_server.drop()

        # The re-read stands in for pushes missed while the socket was down.
        await until(lambda: len(received) == 1)
        assert received[0].data == STORED
        assert len(ledger_server.sockets) == 2
        assert ledger_server.methods().count("accountSubscribe") == 2

        pushed = encode_account(make_city(last_updated=60))
        await ledger_server.notify(101, pushed)
        await until(lambda: len(received) == 2)
        assert received[1].data == pushed

        # The caller's id still releases the new server-side subscription.
        await connection.unsubscribe_account(subscription_id)
        assert ledger_server.requests[-1]["method"] == "accountUnsubscribe"
        assert ledger_server.requests[-1]["params"] == [101]

    async def test_no_restore_after_close(self, ledger_server: LedgerSocketServer) -> None:
        """Closing the connection does not trigger a reconnect."""
        connection = connect(ledger_server, reconnect_delay=0.01)

        async def listener(info: AccountInfo) -> None:
            return None

        await connection.subscribe_account(ADDRESS, listener)
        await connection.close()
        await asyncio.sleep(0.05)

        assert len(ledger_server.sockets) == 1
        assert connection._restorer is None


class TestAccountSyncOverSocket:
    """The account sync keeps following the base copy across a dropped socket."""

    async def test_base_view_catches_up_after_drop(
        self, ledger_server: LedgerSocketServer, connection: RpcLedgerConnection
    ) -> None:
        """A change made while the socket was down reaches the base view."""
        authority = make_pubkey(7)
        sync = DualLedgerAccountSync(base=connection, rollup=FakeLedger(LedgerKind.ROLLUP))
        await sync.attach(authority)
        assert sync.base_view is not None
        assert sync.base_view.last_updated == 50

        ledger_server.stored = encode_account(make_city(last_updated=70, authority=authority))
        await ledger_server.drop()

        await until(lambda: sync.base_view is not None and sync.base_view.last_updated == 70)
        assert sync.is_subscribed(LedgerKind.BASE)
        assert sync.status is DelegationStatus.UNDELEGATED
        assert ledger_server.methods().count("accountSubscribe") == 2
