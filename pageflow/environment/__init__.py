"""Page environments the steps run against."""

from .base import PageEnvironment
from .playwright_page import PlaywrightPage
from .scripts import generate_script

__all__ = ["PageEnvironment", "PlaywrightPage", "generate_script"]
