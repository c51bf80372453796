from fancard.states.registration_states import RegistrationStates, ScannerStates, VerifyStates
from fancard.states.admin_states import AdminCodeStates

__all__ = [
    "RegistrationStates", "ScannerStates", "VerifyStates",
    "AdminCodeStates",
]
