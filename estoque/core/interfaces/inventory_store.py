"""Abstract interfaces for inventory storage."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from estoque.core.entities.allocation import Allocation
from estoque.core.entities.ledger import LedgerEntry
from estoque.core.entities.material import Material
from estoque.core.entities.serial import SerialStatus, SerialUnit


class IInventoryUnitOfWork(ABC):
    """
    Reads and writes bound to one write transaction.

    Everything done through a unit of work commits or rolls back together.
    Updates are compare-and-set on ``version``: a stale row raises
    ``ConflictRetryableError``.
    """

    # Materials
    @abstractmethod
    async def get_material(self, material_id: str) -> Material | None:
        pass

    @abstractmethod
    async def next_material_id(self) -> str:
        """Next free sequential id (MAT1, MAT2, ...)."""
        pass

    @abstractmethod
    async def insert_material(self, material: Material) -> Material:
        pass

    @abstractmethod
    async def update_material(self, material: Material) -> Material:
        """Persist counters and flags; returns the row with its new version."""
        pass

    @abstractmethod
    async def refresh_serial_counters(self, material_id: str) -> Material:
        """Recompute a serial material's counters from its serial units."""
        pass

    @abstractmethod
    async def list_serial_materials(self, material_id: str | None = None) -> list[Material]:
        pass

    # Serial units
    @abstractmethod
    async def get_serial(self, serial_id: int) -> SerialUnit | None:
        pass

    @abstractmethod
    async def get_serial_by_number(self, material_id: str, numero: str) -> SerialUnit | None:
        pass

    @abstractmethod
    async def insert_serial(self, serial: SerialUnit) -> SerialUnit:
        """Insert a serial unit; duplicate numbers raise ``DuplicateKeyError``."""
        pass

    @abstractmethod
    async def update_serial(self, serial: SerialUnit) -> SerialUnit:
        pass

    @abstractmethod
    async def count_serials(self, material_id: str, status: SerialStatus) -> int:
        pass

    # Allocations
    @abstractmethod
    async def get_allocation(self, allocation_id: int) -> Allocation | None:
        pass

    @abstractmethod
    async def get_open_allocation_for_serial(self, serial_id: int) -> Allocation | None:
        pass

    @abstractmethod
    async def count_open_allocations(self, material_id: str) -> int:
        pass

    @abstractmethod
    async def insert_allocation(self, allocation: Allocation) -> Allocation:
        pass

    @abstractmethod
    async def update_allocation(self, allocation: Allocation) -> Allocation:
        pass

    # Ledger
    @abstractmethod
    async def append_ledger(self, entry: LedgerEntry) -> LedgerEntry:
        """Append one entry; returns it with the assigned id."""
        pass


class IInventoryStore(ABC):
    """Interface for catalog, serial, allocation and ledger persistence."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[IInventoryUnitOfWork]:
        """Open a write transaction."""
        pass

    @abstractmethod
    async def get_material(self, material_id: str) -> Material | None:
        pass

    @abstractmethod
    async def list_materials(
        self,
        categoria: str | None = None,
        include_retired: bool = False,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[Material]:
        pass

    @abstractmethod
    async def get_serial(self, serial_id: int) -> SerialUnit | None:
        pass

    @abstractmethod
    async def list_serials(
        self,
        material_id: str,
        status: SerialStatus | None = None,
    ) -> list[SerialUnit]:
        pass

    @abstractmethod
    async def get_allocation(self, allocation_id: int) -> Allocation | None:
        pass

    @abstractmethod
    async def list_allocations(
        self,
        material_id: str | None = None,
        evento_id: str | None = None,
        open_only: bool = False,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[Allocation]:
        pass

    @abstractmethod
    async def has_pending_returns(self, evento_id: str) -> bool:
        """True while the event still has open allocations."""
        pass

    @abstractmethod
    async def list_ledger_page(
        self,
        material_id: str | None = None,
        serial_id: int | None = None,
        as_of: datetime | None = None,
        after: tuple[datetime, int] | None = None,
        limit: int = 200,
        up_to_id: int | None = None,
    ) -> list[LedgerEntry]:
        """
        One page of ledger entries ordered by (registrado_em, id).

        ``after`` is the sort key of the last entry of the previous page;
        ``up_to_id`` excludes entries committed after that id was read.
        """
        pass

    @abstractmethod
    async def max_ledger_id(self) -> int:
        """Highest committed ledger id, 0 for an empty ledger."""
        pass

    @abstractmethod
    async def count_serials_by_category(self) -> list[tuple[str, str, int]]:
        """(categoria, status, count) rows over active materials."""
        pass
