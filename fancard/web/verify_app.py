"""
Public verify page, a small aiohttp app served alongside the bot.

  GET /verify?c=CODE       → card status page (legacy ?code= accepted)
  GET /verify              → empty lookup form
  GET /verify/qr.png?c=    → QR of the verify link, for printing
  GET /healthz             → "ok"

Read-only: visits are never written to the Scan Log.
"""
import asyncio
import html
import logging

from aiohttp import web

from fancard.config import Settings
from fancard.models import Database
from fancard.services import VerifyFlow, ViewState, build_verify_url, extract_code, generate_qr_png, session_lookup
from fancard.services.link_service import CODE_PARAM, VERIFY_PATH

logger = logging.getLogger(__name__)

DATABASE_KEY = web.AppKey("database", Database)
SETTINGS_KEY = web.AppKey("settings", Settings)

_STYLE = """
  body { font-family: -apple-system, BlinkMacSystemFont, sans-serif; max-width: 480px; margin: 0 auto; padding: 16px; background: #f4f7f5; color: #1b2a20; }
  h1 { font-size: 1.3em; border-bottom: 2px solid #1f4d2f; padding-bottom: 8px; }
  .card { background: #fff; border-radius: 10px; padding: 16px; margin-bottom: 12px; border-left: 6px solid #8b949e; }
  .ok { border-left-color: #2e7d32; }
  .warn { border-left-color: #f9a825; }
  .bad { border-left-color: #c62828; }
  .code { font-family: monospace; font-size: 1.1em; }
  .row { display: flex; justify-content: space-between; margin: 4px 0; }
  .label { color: #5f6b63; }
  form { display: flex; gap: 8px; }
  input { flex: 1; padding: 8px; font-family: monospace; text-transform: uppercase; }
  button { padding: 8px 14px; background: #1f4d2f; color: #fff; border: 0; border-radius: 6px; }
"""


def _form(code: str = "") -> str:
    return (
        f'<form method="get" action="{VERIFY_PATH}">'
        f'<input name="{CODE_PARAM}" value="{html.escape(code)}" placeholder="FC…" autocomplete="off">'
        f'<button type="submit">Проверить</button></form>'
    )


def render_page(flow: VerifyFlow) -> str:
    """HTML for the flow's current state. All store data is escaped."""
    code = flow.initial_code
    if flow.state == ViewState.OK and flow.result.is_registered:
        v = flow.result
        when = v.registered_at.strftime("%d.%m.%Y") if v.registered_at else "—"
        body = (
            '<div class="card ok"><h2>✅ Карта действительна</h2>'
            f'<div class="code">{html.escape(v.code)}</div>'
            f'<div class="row"><span class="label">Болельщик</span><span>{html.escape(v.fan_name or "")}</span></div>'
            f'<div class="row"><span class="label">Зарегистрирована</span><span>{when}</span></div>'
            '</div>'
        )
    elif flow.state == ViewState.OK:
        body = (
            '<div class="card warn"><h2>⚠️ Карта не зарегистрирована</h2>'
            f'<div class="code">{html.escape(flow.result.code)}</div>'
            '<p>Код существует, но ещё не привязан к болельщику.</p></div>'
        )
    elif flow.state == ViewState.NOTFOUND:
        body = (
            '<div class="card bad"><h2>❌ Недействительный код</h2>'
            f'<p>{html.escape(flow.message)}</p></div>'
        )
    elif flow.state == ViewState.ERROR:
        body = (
            '<div class="card bad"><h2>❌ Ошибка при проверке</h2>'
            f'<p>{html.escape(flow.message)}</p><p>Попробуйте ещё раз.</p></div>'
        )
    else:
        body = '<div class="card"><p>Введите код с фан-карты.</p></div>'

    return f"""<!DOCTYPE html>
<html><head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>FanCard — проверка</title>
<style>{_STYLE}</style>
</head><body>
<h1>🎫 Проверка фан-карты</h1>
{body}
{_form(code)}
</body></html>"""


async def handle_verify(request: web.Request) -> web.Response:
    code = (extract_code(request.query_string) or "").strip().upper()
    database = request.app[DATABASE_KEY]

    async with database.session() as session:
        flow = VerifyFlow(session_lookup(session), initial_code=code)
        await flow.start()

    return web.Response(text=render_page(flow), content_type="text/html")


async def handle_qr(request: web.Request) -> web.Response:
    code = (extract_code(request.query_string) or "").strip().upper()
    if not code:
        raise web.HTTPBadRequest(text="missing code")
    url = build_verify_url(code, request.app[SETTINGS_KEY].verify_base_url)
    png = await asyncio.to_thread(generate_qr_png, url)
    return web.Response(body=png, content_type="image/png")


async def handle_health(request: web.Request) -> web.Response:
    return web.Response(text="ok")


def create_verify_app(database: Database, settings: Settings) -> web.Application:
    app = web.Application()
    app[DATABASE_KEY] = database
    app[SETTINGS_KEY] = settings
    app.router.add_get(VERIFY_PATH, handle_verify)
    app.router.add_get(f"{VERIFY_PATH}/qr.png", handle_qr)
    app.router.add_get("/healthz", handle_health)
    return app
