from typing import Iterable, List

from app.domain.pharmacy.mappers import to_medicine_view
from app.domain.pharmacy.models import Medication
from app.domain.pharmacy.repository import MedicationRepository


class MedicineCatalogReader:
    """Read access to the medicine catalog"""

    def __init__(self, repo: MedicationRepository):
        self.repo = repo

    async def list_medicines(self) -> List[dict]:
        """All catalog entries by name, normalized for display"""
        medications = await self.repo.list_by_name()
        return [to_medicine_view(m) for m in medications]

    async def find_by_ids(self, ids: Iterable[str]) -> List[Medication]:
        """Catalog entries whose id is in ``ids``; unknown ids are simply absent"""
        return await self.repo.get_by_ids(set(ids))
