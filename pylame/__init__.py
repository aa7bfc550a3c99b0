"""pylame is a safe, resource-managed Python binding to the LAME MP3 encoder."""

from ._package_metadata import get_metadata as _metadata


__title__ = _metadata("Name", ["project", "name"])
__description__ = _metadata("Summary", ["project", "description"])
__url__ = _metadata("Home-page", ["project", "urls", "Homepage"])
__author__ = _metadata("Author", ["project", "authors", 0, "name"])
__author_email__ = _metadata("Author-email", ["project", "authors", 0, "email"])
__version__ = _metadata("Version", ["project", "version"])
__license__ = _metadata("License", ["project", "license", "text"])


from .backend import LameBackend, NativeLameBackend, get_default_backend
from .encoder import EncoderConfig, EncoderState, Lame, lame_version
from .exceptions import *
from .status import *
