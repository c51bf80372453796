from fancard.web.verify_app import create_verify_app

__all__ = ["create_verify_app"]
