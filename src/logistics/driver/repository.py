"""Repository for the Driver aggregate."""

from logistics.domain import logistics
from logistics.driver.driver import Driver, DriverStatus


@logistics.repository(part_of=Driver)
class DriverRepository:
    def for_company(self, company_id: str) -> list[Driver]:
        return self._dao.query.filter(company_id=str(company_id)).order_by("name").all().items

    def available_for_company(self, company_id: str) -> list[Driver]:
        """Active drivers that are currently online."""
        return (
            self._dao.query.filter(
                company_id=str(company_id),
                status=DriverStatus.ACTIVE.value,
                is_online=True,
            )
            .all()
            .items
        )
