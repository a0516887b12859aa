"""Driver availability — online/offline and activation commands."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.driver.driver import Driver


@logistics.command(part_of="Driver")
class GoOnline:
    driver_id = Identifier(required=True)


@logistics.command(part_of="Driver")
class GoOffline:
    driver_id = Identifier(required=True)


@logistics.command(part_of="Driver")
class DeactivateDriver:
    driver_id = Identifier(required=True)


@logistics.command(part_of="Driver")
class ActivateDriver:
    driver_id = Identifier(required=True)


@logistics.command_handler(part_of=Driver)
class DriverAvailabilityHandler:
    @handle(GoOnline)
    def go_online(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.go_online()
        repo.add(driver)

    @handle(GoOffline)
    def go_offline(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.go_offline()
        repo.add(driver)

    @handle(DeactivateDriver)
    def deactivate(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.deactivate()
        repo.add(driver)

    @handle(ActivateDriver)
    def activate(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.activate()
        repo.add(driver)
