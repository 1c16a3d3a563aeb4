from .locator import Candidate, ChipDBLocator, chipdb_filename, find_chipdb, home_directory
from .probe import file_test_open


__all__ = [
    "Candidate",
    "ChipDBLocator",
    "chipdb_filename",
    "file_test_open",
    "find_chipdb",
    "home_directory",
]
