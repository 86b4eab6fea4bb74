from .admin import AdminCog
from .messages import MessagesCog
from .verification import AgreeView, ProofView, VerificationCog

__all__ = ["AdminCog", "MessagesCog", "VerificationCog", "AgreeView", "ProofView"]
