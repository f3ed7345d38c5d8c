from seacan.common.exceptions.base_exceptions import (
    SeacanBaseException,
    ErrorCode,
    ValidationException,
)
from seacan.common.exceptions.build_exceptions import (
    BuildException,
    BuildFailedException,
    TargetNotFoundException,
    PackageNotFoundException,
    AbnormalTerminationException,
    BuildTimeoutException,
)
from seacan.common.exceptions.discovery_exceptions import (
    ProtocolException,
    MalformedMessageException,
    ListingException,
    ListingFailedException,
)

__all__ = [
    "SeacanBaseException",
    "ErrorCode",
    "ValidationException",
    "BuildException",
    "BuildFailedException",
    "TargetNotFoundException",
    "PackageNotFoundException",
    "AbnormalTerminationException",
    "BuildTimeoutException",
    "ProtocolException",
    "MalformedMessageException",
    "ListingException",
    "ListingFailedException",
]
