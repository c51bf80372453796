from aiogram.fsm.state import State, StatesGroup


class AdminCodeStates(StatesGroup):
    """FSM for code generation."""
    enter_batch_size = State()   # Text input: 1–100
