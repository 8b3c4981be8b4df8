"""
Replay Ledger Use Case — ordered movement history.

``LedgerReplay`` is a lazy async iterable: entries are fetched page by page
in (registrado_em, id) order, and every ``async for`` starts again from the
first entry. Two bounds keep repeated iterations identical: the ``as_of``
time and the highest ledger id committed when the replay was pinned. An
entry stamped before ``as_of`` by a transaction that commits later gets an id
above the pin and stays out.
"""

from collections.abc import AsyncIterator
from datetime import UTC, datetime

from estoque.application.dto.responses import LedgerEntryResponse, LedgerReplayResponse
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger, get_settings
from estoque.core.entities.ledger import LedgerEntry
from estoque.core.exceptions import NotFoundError, ValidationError
from estoque.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)


class LedgerReplay:
    """Restartable, paged iteration over ledger entries."""

    def __init__(
        self,
        store: IInventoryStore,
        material_id: str | None = None,
        serial_id: int | None = None,
        as_of: datetime | None = None,
        page_size: int | None = None,
        up_to_id: int | None = None,
    ):
        self.store = store
        self.material_id = material_id
        self.serial_id = serial_id
        self.as_of = as_of or datetime.now(UTC)
        self.page_size = page_size or get_settings().inventory.replay_page_size
        self.up_to_id = up_to_id

    async def pin(self) -> "LedgerReplay":
        """Fix the id bound now; iteration pins lazily otherwise."""
        if self.up_to_id is None:
            self.up_to_id = await self.store.max_ledger_id()
        return self

    def __aiter__(self) -> AsyncIterator[LedgerEntry]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[LedgerEntry]:
        await self.pin()
        after = None
        while True:
            page = await self.store.list_ledger_page(
                material_id=self.material_id,
                serial_id=self.serial_id,
                as_of=self.as_of,
                after=after,
                limit=self.page_size,
                up_to_id=self.up_to_id,
            )
            for entry in page:
                yield entry
            if len(page) < self.page_size:
                return
            after = page[-1].sort_key

    async def collect(self) -> list[LedgerEntry]:
        return [entry async for entry in self]


class ReplayLedgerUseCase(InventoryUseCase):
    """Movement history of a material or a serial unit."""

    async def execute(
        self,
        material_id: str | None = None,
        serial_id: int | None = None,
        as_of: datetime | None = None,
    ) -> LedgerReplay:
        if material_id is None and serial_id is None:
            raise ValidationError("material_id", "give a material_id or a serial_id")

        store = await self._get_store()
        if material_id is not None and await store.get_material(material_id) is None:
            raise NotFoundError("Material", material_id)
        if serial_id is not None and await store.get_serial(serial_id) is None:
            raise NotFoundError("Serial", serial_id)

        logger.debug("ledger_replay", material_id=material_id, serial_id=serial_id, as_of=as_of)
        return await LedgerReplay(store, material_id=material_id, serial_id=serial_id, as_of=as_of).pin()

    async def to_response(self, replay: LedgerReplay) -> LedgerReplayResponse:
        """Materialise the replay for the API."""
        entries = await replay.collect()
        return LedgerReplayResponse(
            material_id=replay.material_id,
            serial_id=replay.serial_id,
            as_of=replay.as_of,
            total=len(entries),
            entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        )
