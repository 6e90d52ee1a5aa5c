# minglz/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from minglz.models.user import User  # noqa: F401
from minglz.models.verification_code import VerificationCode  # noqa: F401

from minglz.models.location import Location  # noqa: F401
from minglz.models.store import Store  # noqa: F401
from minglz.models.coupon import Coupon  # noqa: F401

from minglz.models.event import Event  # noqa: F401
from minglz.models.landing_page import LandingPage, PageContent  # noqa: F401
from minglz.models.page_visit import PageVisit  # noqa: F401
