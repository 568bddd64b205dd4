from strata.db.models.page import PageRecord
from strata.db.models.page_version import PageVersionRecord

__all__ = ["PageRecord", "PageVersionRecord"]
