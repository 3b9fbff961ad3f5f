# backend/lib/smart_elec_core/errors.py


class PricePlanError(Exception):
    """Base class for failures raised by the price plan calculations."""


class NoPlanAssignedError(PricePlanError):
    def __init__(self, smart_meter_id: str):
        super().__init__(f"No price plan attached to smart meter id: {smart_meter_id}")
        self.smart_meter_id = smart_meter_id


class UnknownPlanError(PricePlanError):
    def __init__(self, plan_id: str):
        super().__init__(f"No price plan found for id: {plan_id}")
        self.plan_id = plan_id


class DivisionByZeroError(PricePlanError, ZeroDivisionError):
    """Readings span zero hours, so no consumption rate can be derived."""


class InvalidReadingError(PricePlanError, ValueError):
    """A reading row or payload could not be parsed."""
