"""
Business Logic Layer for customer equipment profiles.
"""

from typing import Any, Dict, List, Optional

from aws_lambda_powertools.metrics import MetricUnit

from support_desk.dal import CustomerEquipment, CustomerPage, EquipmentStore
from support_desk.handlers.utils.errors import ErrorContext, NotFoundError, UpstreamError, ValidationError
from support_desk.handlers.utils.observability import logger, metrics, tracer
from support_desk.models.equipment import (
    MAX_FAVORITES,
    MAX_MACHINES,
    EquipmentProfile,
    sanitize_machine,
)
from support_desk.models.ticket import utc_now_iso


class CustomerNotFoundError(NotFoundError):
    def __init__(self, customer_id: str, context: Optional[ErrorContext] = None):
        super().__init__(resource_type="Customer", resource_id=customer_id, context=context)


class EquipmentService:
    """Validates, sanitizes and forwards equipment profile operations."""

    def __init__(
        self,
        store: EquipmentStore,
        max_machines: int = MAX_MACHINES,
        max_favorites: int = MAX_FAVORITES,
    ) -> None:
        self.store = store
        self.max_machines = max_machines
        self.max_favorites = max_favorites

    @tracer.capture_method
    def list_customers(self, limit: int, cursor: Optional[str] = None) -> CustomerPage:
        page = self.store.list_customers(first=limit, after=cursor)
        logger.info("Customers with equipment listed", extra={
            "returned": len(page.customers),
            "has_next_page": page.has_next_page,
        })
        return page

    @tracer.capture_method
    def get_customer(self, customer_id: str, context: Optional[ErrorContext] = None) -> CustomerEquipment:
        customer = self.store.get_customer(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id, context=context)
        return customer

    def build_profile(self, machines: List[Any], context: Optional[ErrorContext] = None) -> EquipmentProfile:
        """
        Validate limits and sanitize every machine.

        Raises:
            ValidationError: Too many machines, too many favorites, or a machine that is not an object
        """
        if len(machines) > self.max_machines:
            raise ValidationError(
                message=f"Equipment list cannot exceed {self.max_machines} items",
                context=context,
            )

        for index, machine in enumerate(machines):
            if not isinstance(machine, dict):
                raise ValidationError(
                    message="Each machine must be an object",
                    field_errors=[{"field": f"machines[{index}]", "message": "Expected an object"}],
                    context=context,
                )

        now = utc_now_iso()
        profile = EquipmentProfile(
            machines=[sanitize_machine(machine, now=now) for machine in machines],
            updated_at=now,
        )

        if profile.favorite_count > self.max_favorites:
            raise ValidationError(
                message=f"Cannot have more than {self.max_favorites} favorite machines",
                context=context,
            )

        return profile

    @tracer.capture_method
    def save_profile(
        self,
        customer_id: str,
        machines: List[Any],
        context: Optional[ErrorContext] = None,
    ) -> EquipmentProfile:
        """Replace a customer's whole equipment list. Nothing is written when validation fails."""
        profile = self.build_profile(machines, context=context)
        self.store.save_profile(customer_id, profile)

        metrics.add_metric(name="EquipmentSaved", unit=MetricUnit.Count, value=1)
        logger.info("Equipment list saved", extra={
            "customer_id": customer_id,
            "machine_count": profile.machine_count,
            "favorite_count": profile.favorite_count,
        })
        return profile

    @tracer.capture_method
    def add_machine(
        self,
        customer_id: str,
        machine: Dict[str, Any],
        context: Optional[ErrorContext] = None,
    ) -> EquipmentProfile:
        """
        Append one machine to the stored list.

        This is read-modify-write: a concurrent writer of the same profile
        can lose its change (last write wins).

        Raises:
            UpstreamError: The stored profile exists but could not be decoded;
                nothing is written so the stored machines are kept
        """
        customer = self.get_customer(customer_id, context=context)
        if customer.profile_malformed:
            logger.error("Refusing to append to a malformed equipment profile", extra={"customer_id": customer_id})
            metrics.add_metric(name="MalformedEquipmentProfile", unit=MetricUnit.Count, value=1)
            raise UpstreamError(
                message="Stored equipment profile could not be read",
                service_name="commerce-api",
                context=context,
            )
        machines = [existing.model_dump(by_alias=True) for existing in customer.profile.machines]
        machines.append(machine)
        return self.save_profile(customer_id, machines, context=context)
