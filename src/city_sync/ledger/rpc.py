"""
JSON-RPC ledger connection.

Point reads, submissions and confirmations are plain JSON-RPC calls over
HTTP. Account change subscriptions share one websocket per connection: a
reader task routes request responses to waiting futures and notifications to
the registered listeners. When the socket drops, live subscriptions are
re-issued on a fresh socket under the same caller-facing ids.
"""

from __future__ import annotations

import asyncio
import base64
import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp
import httpx

from city_sync.keys import Pubkey

from .connection import AccountChangeCallback
from .errors import (
    AccountNotFoundError,
    ConfirmationTimeoutError,
    LedgerError,
    LedgerRpcError,
    TransactionFailedError,
)
from .types import AccountInfo, Commitment, LedgerKind

logger = logging.getLogger(__name__)


def parse_account_info(value: dict[str, Any]) -> AccountInfo:
    """
    Build an AccountInfo from an RPC account object.

    Data is requested base64 encoded, so it arrives as `[payload, "base64"]`.
    """
    payload, encoding = value["data"]
    if encoding != "base64":
        raise LedgerError(f"Unexpected account encoding: {encoding}")
    return AccountInfo(
        owner=Pubkey.from_base58(value["owner"]),
        data=base64.b64decode(payload),
        lamports=int(value.get("lamports", 0)),
        executable=bool(value.get("executable", False)),
    )


@dataclass(slots=True)
class _Subscription:
    """One account subscription as the caller sees it."""

    address: Pubkey
    callback: AccountChangeCallback
    server_id: int | None = None
    """The id the server assigned on the current socket, if subscribed there."""


@dataclass(slots=True)
class RpcLedgerConnection:
    """
    A connection to one ledger over JSON-RPC.

    The HTTP client and the websocket are opened lazily on first use.
    """

    kind: LedgerKind
    """Which ledger this connection talks to."""

    rpc_url: str
    """HTTP JSON-RPC endpoint."""

    ws_url: str
    """Websocket endpoint for subscriptions."""

    commitment: Commitment = Commitment.CONFIRMED
    """Commitment used for reads, subscriptions and confirmations."""

    request_timeout: float = 30.0
    """Timeout for individual HTTP requests in seconds."""

    confirm_timeout: float = 60.0
    """How long to wait for a transaction to reach the commitment."""

    poll_interval: float = 0.5
    """Delay between signature status polls in seconds."""

    reconnect_delay: float = 1.0
    """Delay between attempts to restore subscriptions after a dropped socket."""

    _http: httpx.AsyncClient | None = field(default=None, repr=False)
    _session: aiohttp.ClientSession | None = field(default=None, repr=False)
    _ws: aiohttp.ClientWebSocketResponse | None = field(default=None, repr=False)
    _reader: asyncio.Task[None] | None = field(default=None, repr=False)
    _ws_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _ids: itertools.count[int] = field(default_factory=lambda: itertools.count(1), repr=False)
    _pending: dict[int, asyncio.Future[Any]] = field(default_factory=dict, repr=False)
    _subscriptions: dict[int, _Subscription] = field(default_factory=dict, repr=False)
    _routes: dict[int, int] = field(default_factory=dict, repr=False)
    _restorer: asyncio.Task[None] | None = field(default=None, repr=False)
    _closing: bool = field(default=False, repr=False)
    _dispatches: set[asyncio.Task[None]] = field(default_factory=set, repr=False)

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _call(self, method: str, params: list[Any]) -> Any:
        """
        Perform one JSON-RPC call and return its `result`.

        Raises:
            LedgerRpcError: If the response carries an error object.
            LedgerError: On transport failures.
        """
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.request_timeout)

        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._http.post(self.rpc_url, json=body)
            response.raise_for_status()
            reply = response.json()
        except httpx.HTTPStatusError as exc:
            raise LedgerError(
                f"HTTP error {exc.response.status_code} from {self.kind.value} ledger"
            ) from exc
        except httpx.RequestError as exc:
            raise LedgerError(f"Network error talking to {self.kind.value} ledger: {exc}") from exc

        if "error" in reply:
            error = reply["error"]
            raise LedgerRpcError(error.get("code", 0), error.get("message", ""), error.get("data"))
        return reply.get("result")

    async def get_account_info(self, address: Pubkey) -> AccountInfo:
        """Read an account, base64 encoded."""
        result = await self._call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment.value}],
        )
        value = result.get("value") if result else None
        if value is None:
            raise AccountNotFoundError(address)
        return parse_account_info(value)

    async def get_latest_blockhash(self) -> str:
        """Return the latest blockhash at the configured commitment."""
        result = await self._call("getLatestBlockhash", [{"commitment": self.commitment.value}])
        return result["value"]["blockhash"]

    async def send_raw_transaction(self, raw: bytes) -> str:
        """
        Broadcast a signed transaction.

        Preflight simulation is skipped: the rollup does not support it for
        delegated accounts, and failures surface during confirmation anyway.
        """
        return await self._call(
            "sendTransaction",
            [
                base64.b64encode(raw).decode("ascii"),
                {
                    "encoding": "base64",
                    "skipPreflight": True,
                    "preflightCommitment": self.commitment.value,
                },
            ],
        )

    async def confirm_transaction(self, signature: str) -> None:
        """Poll signature statuses until the commitment is reached."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirm_timeout

        while True:
            result = await self._call(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": False}],
            )
            status = (result or {}).get("value", [None])[0]
            if status is not None:
                if status.get("err") is not None:
                    raise TransactionFailedError(signature, status["err"])
                if self.commitment.is_reached_by(status.get("confirmationStatus")):
                    return

            if loop.time() >= deadline:
                raise ConfirmationTimeoutError(signature, self.confirm_timeout)
            await asyncio.sleep(self.poll_interval)

    async def get_transaction_logs(self, signature: str) -> list[str]:
        """
        Return the log messages of a landed transaction.

        Raises:
            LedgerError: If the transaction or its metadata is unavailable.
        """
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment.value,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        logs = ((result or {}).get("meta") or {}).get("logMessages")
        if logs is None:
            raise LedgerError(f"Transaction {signature} not found or has no logs")
        return list(logs)

    # -------------------------------------------------------------------------
    # Websocket subscriptions
    # -------------------------------------------------------------------------

    async def _ensure_ws(self) -> aiohttp.ClientWebSocketResponse:
        """
        Open the websocket and start the reader if needed.

        Raises:
            LedgerError: If the socket cannot be opened.
        """
        async with self._ws_lock:
            if self._ws is not None and not self._ws.closed:
                return self._ws
            if self._session is None:
                self._session = aiohttp.ClientSession()
            logger.debug("Opening %s ledger websocket %s", self.kind.value, self.ws_url)
            try:
                self._ws = await self._session.ws_connect(self.ws_url, heartbeat=30.0)
            except (aiohttp.ClientError, TimeoutError) as exc:
                raise LedgerError(
                    f"Cannot open {self.kind.value} ledger websocket {self.ws_url}: {exc}"
                ) from exc
            self._reader = asyncio.create_task(self._read_loop(self._ws))
            return self._ws

    async def _ws_request(self, method: str, params: list[Any]) -> Any:
        """
        Send a request over the websocket and wait for its response.

        Raises:
            LedgerRpcError: If the response carries an error object.
            LedgerError: On transport failures, a dropped socket or a timeout.
        """
        ws = await self._ensure_ws()
        request_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await ws.send_str(
                json.dumps({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params})
            )
            return await asyncio.wait_for(future, timeout=self.request_timeout)
        except TimeoutError as exc:
            raise LedgerError(
                f"{method} on {self.kind.value} ledger websocket timed out "
                f"after {self.request_timeout}s"
            ) from exc
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise LedgerError(
                f"Cannot send {method} on {self.kind.value} ledger websocket: {exc}"
            ) from exc
        finally:
            self._pending.pop(request_id, None)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Route websocket messages until the socket closes."""
        try:
            async for msg in ws:
                if msg.type != aiohttp.WSMsgType.TEXT:
                    if msg.type == aiohttp.WSMsgType.ERROR:
                        logger.warning(
                            "%s ledger websocket error: %s", self.kind.value, ws.exception()
                        )
                    continue
                try:
                    self._route(json.loads(msg.data))
                except (ValueError, KeyError, LedgerError) as exc:
                    logger.warning("Dropping malformed %s ledger message: %s", self.kind.value, exc)
        finally:
            # Fail any request still waiting on this socket.
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(LedgerError(f"{self.kind.value} ledger websocket closed"))

            # Server-side ids die with the socket.
            self._routes.clear()
            for subscription in self._subscriptions.values():
                subscription.server_id = None

        if self._closing or not self._subscriptions:
            return
        if self._restorer is not None:
            self._restorer.cancel()
        logger.warning(
            "%s ledger websocket dropped, restoring %d subscription(s)",
            self.kind.value,
            len(self._subscriptions),
        )
        self._restorer = asyncio.create_task(self._restore_subscriptions())

    async def _restore_subscriptions(self) -> None:
        """
        Reopen the socket and re-issue every live subscription.

        Retries until every subscription is back or the connection is closed.
        Each account is then read once and handed to its listener, so changes
        made while the socket was down are not missed.
        """
        while not self._closing:
            try:
                for local_id, subscription in list(self._subscriptions.items()):
                    if subscription.server_id is None and local_id in self._subscriptions:
                        await self._open_subscription(local_id, subscription)
                break
            except LedgerError as exc:
                logger.warning(
                    "Restoring %s ledger subscriptions failed, retrying in %.1fs: %s",
                    self.kind.value,
                    self.reconnect_delay,
                    exc,
                )
                await asyncio.sleep(self.reconnect_delay)

        for subscription in list(self._subscriptions.values()):
            try:
                info = await self.get_account_info(subscription.address)
            except LedgerError as exc:
                logger.warning(
                    "Re-reading %s after reconnect failed: %s", subscription.address, exc
                )
                continue
            self._dispatch(subscription.callback, info)

    async def _open_subscription(self, local_id: int, subscription: _Subscription) -> None:
        """Issue `accountSubscribe` and route the server id to the local id."""
        server_id = await self._ws_request(
            "accountSubscribe",
            [
                str(subscription.address),
                {"encoding": "base64", "commitment": self.commitment.value},
            ],
        )
        subscription.server_id = server_id
        self._routes[server_id] = local_id
        logger.debug(
            "Subscribed to %s on %s ledger (id %s, server id %s)",
            subscription.address,
            self.kind.value,
            local_id,
            server_id,
        )

    def _route(self, message: dict[str, Any]) -> None:
        """Resolve a pending request or dispatch a notification."""
        if "id" in message and message["id"] in self._pending:
            future = self._pending[message["id"]]
            if future.done():
                return
            if "error" in message:
                error = message["error"]
                future.set_exception(
                    LedgerRpcError(error.get("code", 0), error.get("message", ""))
                )
            else:
                future.set_result(message.get("result"))
            return

        if message.get("method") != "accountNotification":
            return

        params = message["params"]
        local_id = self._routes.get(params["subscription"])
        subscription = self._subscriptions.get(local_id) if local_id is not None else None
        if subscription is None:
            return

        self._dispatch(subscription.callback, parse_account_info(params["result"]["value"]))

    def _dispatch(self, callback: AccountChangeCallback, info: AccountInfo) -> None:
        """Run a listener in its own task."""
        task = asyncio.create_task(callback(info))
        self._dispatches.add(task)
        task.add_done_callback(self._dispatch_done)

    def _dispatch_done(self, task: asyncio.Task[None]) -> None:
        """Forget a finished listener task and log its failure."""
        self._dispatches.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "%s ledger account listener failed: %s", self.kind.value, exc, exc_info=exc
            )

    async def subscribe_account(self, address: Pubkey, callback: AccountChangeCallback) -> int:
        """
        Subscribe to changes of one account.

        The returned id stays valid across websocket reconnects.
        """
        local_id = next(self._ids)
        subscription = _Subscription(address=address, callback=callback)
        self._subscriptions[local_id] = subscription
        try:
            await self._open_subscription(local_id, subscription)
        except LedgerError:
            self._subscriptions.pop(local_id, None)
            raise
        return local_id

    async def unsubscribe_account(self, subscription_id: int) -> None:
        """Stop delivering notifications, then tell the server."""
        # Drop the listener first so no late notification reaches it.
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None or subscription.server_id is None:
            return
        self._routes.pop(subscription.server_id, None)
        if self._ws is None or self._ws.closed:
            return
        await self._ws_request("accountUnsubscribe", [subscription.server_id])
        logger.debug("Unsubscribed id %s on %s ledger", subscription_id, self.kind.value)

    async def close(self) -> None:
        """Close the websocket, the reader and both HTTP clients."""
        self._closing = True
        self._subscriptions.clear()
        self._routes.clear()
        for task in (self._restorer, self._reader):
            if task is not None:
                task.cancel()
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        for task in (self._restorer, self._reader):
            if task is not None:
                await asyncio.gather(task, return_exceptions=True)
        self._restorer = None
        self._reader = None
        if self._session is not None:
            await self._session.close()
            self._session = None
        if self._http is not None:
            await self._http.aclose()
            self._http = None
