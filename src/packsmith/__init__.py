"""packsmith: installs, validates, and registers content packs in host projects."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("packsmith")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from packsmith.core import InstallationContext, PackDescriptor
from packsmith.install import InstallResult, install_pack
from packsmith.validation import ValidationResult, validate_installation, validate_pack

__all__ = [
    "InstallResult",
    "InstallationContext",
    "PackDescriptor",
    "ValidationResult",
    "__version__",
    "install_pack",
    "validate_installation",
    "validate_pack",
]
