from app.middleware.security import SecurityMiddleware, get_client_ip

__all__ = ["SecurityMiddleware", "get_client_ip"]
