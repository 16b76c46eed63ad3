"""
Domain exceptions.

Raised inside a single per-employee notification unit; the reminder engine
counts them as errors without aborting the run.
"""


class TimeTrackerError(Exception):
    pass


class EmployeeNotFoundError(TimeTrackerError):
    def __init__(self, employee_id: str):
        super().__init__(f"Employee {employee_id} not found")
        self.employee_id = employee_id


class MissingPushAddressError(TimeTrackerError):
    def __init__(self, employee_id: str):
        super().__init__(f"Employee {employee_id} has no push token")
        self.employee_id = employee_id


class DeliveryError(TimeTrackerError):
    def __init__(self, employee_id: str | None, reason: str | None):
        super().__init__(f"Push delivery failed for {employee_id}: {reason}")
        self.employee_id = employee_id
        self.reason = reason
