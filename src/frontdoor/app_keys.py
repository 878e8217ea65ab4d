"""Application keys for type-safe app configuration access."""

from aiohttp import web

from frontdoor.assets import StaticRule
from frontdoor.forwarded import ForwardedSettings
from frontdoor.renderer import RenderHandler

forwarded_key = web.AppKey("forwarded", ForwardedSettings)
static_rules_key = web.AppKey("static_rules", tuple[StaticRule, ...])
render_handler_key = web.AppKey("render_handler", RenderHandler)
