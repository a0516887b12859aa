"""Driver registration — command and handler.

Account creation and authentication live outside this context; this only
creates the operational driver record the dispatch flow works with.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.driver.driver import Driver


@logistics.command(part_of="Driver")
class RegisterDriver:
    company_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    phone = String(max_length=50)
    vehicle_number = String(max_length=50)


@logistics.command_handler(part_of=Driver)
class RegisterDriverHandler:
    @handle(RegisterDriver)
    def register_driver(self, command):
        driver = Driver.register(
            company_id=command.company_id,
            name=command.name,
            phone=command.phone,
            vehicle_number=command.vehicle_number,
        )
        current_domain.repository_for(Driver).add(driver)
        return str(driver.id)
