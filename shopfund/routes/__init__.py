from .auth_routes import auth_bp
from .core_routes import core
from .shop_routes import shops
from .campaign_routes import campaigns
from .reward_routes import rewards
from .donation_routes import donations_bp
from .admin_routes import admin_bp

__all__ = ["auth_bp", "core", "shops", "campaigns", "rewards", "donations_bp", "admin_bp"]
