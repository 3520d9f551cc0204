"""
Error taxonomy for the MySQL tuning health check.

Fatal errors (AcquisitionFailure, MissingPrerequisite) propagate to main(),
which prints the message and exits non-zero. The remaining two are absorbed
where they are raised and degrade into a WARN finding or a skipped rule.
"""


class HealthCheckError(Exception):
    """Base class for all health check errors."""


class AcquisitionFailure(HealthCheckError):
    """A snapshot component could not be obtained (auth, network, driver)."""


class MissingPrerequisite(HealthCheckError):
    """A counter required for derivation is absent, or the server is idle.

    Attributes:
        counter: Name of the variable or status counter that failed the check.
    """

    def __init__(self, message, counter=None):
        super().__init__(message)
        self.counter = counter


class UnavailableHostFact(HealthCheckError):
    """A host fact could not be determined, usually for lack of privileges."""


class UnsupportedOnVersion(HealthCheckError):
    """A metric or rule does not apply to the connected server version."""
