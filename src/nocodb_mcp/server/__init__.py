from .app import create_app, create_server
from .lowlevel import RequestContext, Server
from .session_manager import SessionManager

__all__ = ["RequestContext", "Server", "SessionManager", "create_app", "create_server"]
