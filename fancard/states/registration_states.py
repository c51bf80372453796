from aiogram.fsm.state import State, StatesGroup


class RegistrationStates(StatesGroup):
    """FSM for the registrar flow: bind a pending code to a fan."""
    choose_code     = State()   # Select pending code from list
    enter_fan_name  = State()   # Text input: fan name (required)
    enter_fan_email = State()   # Text input: e-mail (optional, skip button)
    confirm         = State()   # Show summary → confirm or edit


class ScannerStates(StatesGroup):
    """Gate scanner: photos and typed codes are checked while active."""
    scanning = State()


class VerifyStates(StatesGroup):
    """Public lookup: waiting for a code to check."""
    enter_code = State()
