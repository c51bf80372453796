from fancard.services.code_service import (
    CodeStats, generate_code, create_codes,
    list_codes, list_pending_codes, list_registered_codes,
    get_code, get_code_by_id, code_stats,
    register_code, delete_code, delete_pending_codes, delete_all_codes,
)
from fancard.services.verification_service import (
    Verification, ViewState, VerifyFlow, classify, classify_row, session_lookup,
)
from fancard.services.scan_service import (
    ScanResult, ScanSession, ScanSessionRegistry,
    decode_payload, normalize_manual_code, process_scan, log_scan, fetch_scan_history,
)
from fancard.services.link_service import build_verify_url, extract_code
from fancard.services.qr_service import registration_payload, generate_qr_png, decode_qr_image
from fancard.services.export_service import codes_to_csv, export_filename
from fancard.services.change_feed import ChangeFeed, CodeChange, DebouncedReload, LiveViews
from fancard.services.notification_service import Notice, Tone, scan_notice, notify_admins_registered

__all__ = [
    # code lifecycle
    "CodeStats", "generate_code", "create_codes",
    "list_codes", "list_pending_codes", "list_registered_codes",
    "get_code", "get_code_by_id", "code_stats",
    "register_code", "delete_code", "delete_pending_codes", "delete_all_codes",
    # verification
    "Verification", "ViewState", "VerifyFlow", "classify", "classify_row", "session_lookup",
    # scanning
    "ScanResult", "ScanSession", "ScanSessionRegistry",
    "decode_payload", "normalize_manual_code", "process_scan", "log_scan", "fetch_scan_history",
    # links + QR
    "build_verify_url", "extract_code",
    "registration_payload", "generate_qr_png", "decode_qr_image",
    # export
    "codes_to_csv", "export_filename",
    # change feed
    "ChangeFeed", "CodeChange", "DebouncedReload", "LiveViews",
    # notifications
    "Notice", "Tone", "scan_notice", "notify_admins_registered",
]
