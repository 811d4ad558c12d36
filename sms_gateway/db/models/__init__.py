# Models package (re-export feature modules for stable imports)
from .auth.otp import OtpLog
from .settings.app_setting import AppSetting
from .users.identity import AuthIdentity
from .users.profile import Profile

__all__ = [
    "OtpLog",
    "AppSetting",
    "AuthIdentity",
    "Profile",
]
