"""
Centralized CallbackData factories.
Telegram limits callback_data to 64 bytes — all prefixes are kept short.
"""
from aiogram.filters.callback_data import CallbackData


class MainMenuCb(CallbackData, prefix="mm"):
    action: str           # main | register | scan | verify | registered


class AdminPanelCb(CallbackData, prefix="adm"):
    action: str           # back | generate | codes | delete_pending | delete_all | export | scans


class CodeCb(CallbackData, prefix="code"):
    action: str           # view | delete_confirm | delete | verify_qr | list
    cid: int = 0          # code id
    page: int = 0         # list page to return to


class BulkDeleteCb(CallbackData, prefix="bdel"):
    scope: str            # pending | all


class ExportCb(CallbackData, prefix="exp"):
    action: str           # csv | sheets


class RegisterCb(CallbackData, prefix="reg"):
    action: str           # pick | page | skip_email | confirm | edit | cancel
    cid: int = 0
    page: int = 0


class ScannerCb(CallbackData, prefix="scan"):
    action: str           # stop | stats | history
