from .content import FAQ, Blog, Menu, Page, Slider
from .donation import Donation, DonationItem
from .event import Event
from .fund_request import (
    FundraisingCategory,
    FundRaisingRequest,
    FundRequestApproval,
    FundRequestReview,
)
from .role import Permission, Role, role_permissions
from .setting import ContactMessage, Setting
from .stripe_event import StripeEvent
from .user import Admin, User
from .verification import VerificationCode

__all__ = [
    "Admin",
    "Blog",
    "ContactMessage",
    "Donation",
    "DonationItem",
    "Event",
    "FAQ",
    "FundRaisingRequest",
    "FundRequestApproval",
    "FundRequestReview",
    "FundraisingCategory",
    "Menu",
    "Page",
    "Permission",
    "Role",
    "Setting",
    "Slider",
    "StripeEvent",
    "User",
    "VerificationCode",
    "role_permissions",
]
