"""gcloud-ctx — manage and switch between named gcloud configurations."""

__version__ = "0.4.0"

from gcloud_ctx.properties import Properties, PropertiesBuilder  # noqa: E402
from gcloud_ctx.store import Configuration, ConfigurationStore, ConflictAction  # noqa: E402

__all__ = [
    "Configuration",
    "ConfigurationStore",
    "ConflictAction",
    "Properties",
    "PropertiesBuilder",
    "__version__",
]
