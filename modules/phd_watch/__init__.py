from . import lib  # so: from modules.phd_watch import lib
from .main import run  # so: from modules.phd_watch import run

__all__ = ["lib", "run"]
