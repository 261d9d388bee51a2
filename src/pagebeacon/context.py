"""Host page state captured into outgoing events."""

from dataclasses import dataclass


@dataclass
class PageContext:
    """
    The page the client is embedded in.

    ``url`` and ``referrer`` are kept current by the embedding application
    (navigation tracking is not our concern). ``tab_active`` is written by the
    tab-focus tracker through ``set_tab_active`` and is ``None`` until the
    tracker has reported anything.
    """
    url: str = ""
    referrer: str = ""
    tab_active: bool | None = None

    def set_tab_active(self, active: bool | None) -> None:
        self.tab_active = active

    def navigate(self, url: str, referrer: str | None = None) -> None:
        """Record a navigation; the previous location becomes the referrer by default."""
        self.referrer = self.url if referrer is None else referrer
        self.url = url
