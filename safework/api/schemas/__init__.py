from .common import ErrorDetail, ErrorResponse, RequestModel
from .tra import ApprovalDecisionRequest, SignatureRequest, SubmitRequest
from .lmra import CompleteSessionRequest, StartSessionRequest, UpdateSessionRequest

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "RequestModel",
    "ApprovalDecisionRequest",
    "SignatureRequest",
    "SubmitRequest",
    "CompleteSessionRequest",
    "StartSessionRequest",
    "UpdateSessionRequest",
]
