from fancard.keyboards.callbacks import (
    MainMenuCb,
    AdminPanelCb,
    CodeCb,
    BulkDeleteCb,
    ExportCb,
    RegisterCb,
    ScannerCb,
)
from fancard.keyboards.main_menu import (
    public_main_menu, staff_main_menu, admin_main_menu, menu_for, back_to_main,
)
from fancard.keyboards.admin_kb import (
    PAGE_SIZE,
    page_slice,
    code_list_kb,
    code_detail_kb,
    confirm_action_kb,
    bulk_delete_confirm_kb,
    export_kb,
    cancel_input_kb,
)
from fancard.keyboards.registration_kb import (
    pending_codes_kb,
    cancel_registration_kb,
    skip_email_kb,
    confirm_registration_kb,
    scanner_kb,
)

__all__ = [
    # callbacks
    "MainMenuCb", "AdminPanelCb", "CodeCb", "BulkDeleteCb", "ExportCb",
    "RegisterCb", "ScannerCb",
    # main menu
    "public_main_menu", "staff_main_menu", "admin_main_menu", "menu_for", "back_to_main",
    # admin
    "PAGE_SIZE", "page_slice", "code_list_kb", "code_detail_kb", "confirm_action_kb",
    "bulk_delete_confirm_kb", "export_kb", "cancel_input_kb",
    # registrar / scanner
    "pending_codes_kb", "cancel_registration_kb", "skip_email_kb",
    "confirm_registration_kb", "scanner_kb",
]
