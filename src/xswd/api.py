"""High-level XSWD API: subscriptions plus one coroutine per RPC method."""

from __future__ import annotations

import logging
from typing import Any

from xswd.config import ConnectionConfig
from xswd.protocol.connection import Connection
from xswd.protocol.errors import AuthorizationRefusedError
from xswd.protocol.messages import JSONRPCRequest
from xswd.protocol.state import ConnectionState
from xswd.protocol.types import AppInfo, Entity, EventType
from xswd.transport.base import Transport

logger = logging.getLogger(__name__)

Response = dict[str, Any]

# Subscribed right after authorization, in this order
SUBSCRIBED_EVENTS = (
    EventType.NEW_TOPOHEIGHT,
    EventType.NEW_ENTRY,
    EventType.NEW_BALANCE,
)


class _Namespace:
    """Methods served by one entity. Params and results are plain dicts."""

    entity: Entity

    def __init__(self, connection: Connection):
        self._connection = connection

    async def call(
        self,
        method: str,
        params: Any = None,
        wait_on_event: EventType | str | None = None,
    ) -> Response:
        """
        Call any method on this entity.

        Returns the response frame; it holds either `result` or `error`.
        """
        body = JSONRPCRequest(method=method, params=params).to_dict()
        return await self._connection.send_sync(
            self.entity, method, body, wait_on_event=wait_on_event
        )


class WalletAPI(_Namespace):
    """Wallet methods."""

    entity = Entity.WALLET

    async def echo(self, params: list[str]) -> Response:
        return await self.call("Echo", params)

    async def get_address(self) -> Response:
        return await self.call("GetAddress")

    async def get_balance(self) -> Response:
        return await self.call("GetBalance")

    async def get_height(self) -> Response:
        return await self.call("GetHeight")

    async def get_transfer_by_txid(self, params: dict[str, Any]) -> Response:
        return await self.call("GetTransferbyTXID", params)

    async def get_transfers(self, params: dict[str, Any] | None = None) -> Response:
        return await self.call("GetTransfers", params if params is not None else {})

    async def make_integrated_address(self, params: dict[str, Any]) -> Response:
        return await self.call("MakeIntegratedAddress", params)

    async def split_integrated_address(self, params: dict[str, Any]) -> Response:
        return await self.call("SplitIntegratedAddress", params)

    async def query_key(self, params: dict[str, Any]) -> Response:
        return await self.call("QueryKey", params)

    async def transfer(
        self,
        params: dict[str, Any],
        wait_for_entry: bool = False,
    ) -> Response:
        """
        Send a transfer.

        With wait_for_entry, returns only once the wallet pushed the
        matching new_entry event.
        """
        return await self.call(
            "transfer",
            params,
            wait_on_event=EventType.NEW_ENTRY if wait_for_entry else None,
        )

    async def scinvoke(
        self,
        params: dict[str, Any],
        wait_for_entry: bool = False,
    ) -> Response:
        """Invoke a smart contract, optionally waiting for its new_entry event."""
        return await self.call(
            "scinvoke",
            params,
            wait_on_event=EventType.NEW_ENTRY if wait_for_entry else None,
        )


class NodeAPI(_Namespace):
    """Daemon methods, relayed by the wallet."""

    entity = Entity.DAEMON

    async def echo(self, params: list[str]) -> Response:
        return await self.call("DERO.Echo", params)

    async def ping(self) -> Response:
        return await self.call("DERO.Ping")

    async def get_info(self) -> Response:
        return await self.call("DERO.GetInfo")

    async def get_block(self, params: dict[str, Any]) -> Response:
        return await self.call("DERO.GetBlock", params)

    async def get_block_header_by_topo_height(self, params: dict[str, Any]) -> Response:
        return await self.call("DERO.GetBlockHeaderByTopoHeight", params)

    async def get_block_header_by_hash(self, params: dict[str, Any]) -> Response:
        return await self.call("DERO.GetBlockHeaderByHash", params)

    async def get_tx_pool(self) -> Response:
        return await self.call("DERO.GetTxPool")

    async def get_random_address(self, params: dict[str, Any] | None = None) -> Response:
        return await self.call("DERO.GetRandomAddress", params if params is not None else {})

    async def get_transaction(self, params: dict[str, Any]) -> Response:
        return await self.call("DERO.GetTransaction", params)

    async def get_height(self) -> Response:
        return await self.call("DERO.GetHeight")

    async def get_block_count(self) -> Response:
        return await self.call("DERO.GetBlockCount")

    async def get_last_block_header(self) -> Response:
        return await self.call("DERO.GetLastBlockHeader")

    async def get_block_template(self, params: dict[str, Any]) -> Response:
        return await self.call("DERO.GetBlockTemplate", params)

    async def get_encrypted_balance(self, params: dict[str, Any]) -> Response:
        return await self.call("DERO.GetEncryptedBalance", params)

    async def get_sc(
        self,
        params: dict[str, Any],
        wait_for_new_block: bool = False,
    ) -> Response:
        """
        Fetch smart contract state.

        With wait_for_new_block, first waits for the next new_topoheight
        event so that a contract installed in the current block is visible.
        """
        if wait_for_new_block:
            logger.debug("Waiting for new block")
            await self._connection.wait_for(EventType.NEW_TOPOHEIGHT)
        return await self.call("DERO.GetSC", params)

    async def get_gas_estimate(self, params: dict[str, Any]) -> Response:
        return await self.call("DERO.GetGasEstimate", params)

    async def name_to_address(self, params: dict[str, Any]) -> Response:
        return await self.call("DERO.NameToAddress", params)


class XSWD:
    """
    Entry point for applications talking to a wallet over XSWD.

    Usage:
        async with XSWD(app_info) as api:
            response = await api.node.get_height()
    """

    def __init__(
        self,
        app_info: AppInfo,
        config: ConnectionConfig | None = None,
        transport: Transport | None = None,
    ):
        self.connection = Connection(app_info, config=config, transport=transport)
        self.wallet = WalletAPI(self.connection)
        self.node = NodeAPI(self.connection)

    @property
    def state(self) -> ConnectionState:
        """Current state of the underlying connection."""
        return self.connection.state

    async def initialize(self) -> bool:
        """
        Authorize, then subscribe to every push event.

        Returns:
            True only if the wallet accepted the application and confirmed
            all three subscriptions.
        """
        if not await self.connection.initialize():
            logger.info("Application was not authorized")
            return False

        subscribed = True
        for event in SUBSCRIBED_EVENTS:
            response = await self.wallet.call("Subscribe", {"event": event.value})
            if not response.get("result"):
                logger.warning(f"Subscription to {event} failed: {response}")
                subscribed = False
        return subscribed

    async def close(self) -> None:
        """Close the connection to the wallet."""
        await self.connection.close()

    async def __aenter__(self) -> "XSWD":
        try:
            ready = await self.initialize()
        except BaseException:
            await self.close()
            raise

        if not ready:
            await self.close()
            raise AuthorizationRefusedError("Authorization or event subscription refused")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
