from .forums import ForumsTable
from .jobs import JobsTable
from .media import MediaTable
from .posts import PostsTable
from .schema import CURRENT_APP_SCHEMA_VERSION, SchemaVersionTable
from .sites import SitesTable
from .threads import ThreadsTable

__all__ = [
    "CURRENT_APP_SCHEMA_VERSION",
    "ForumsTable",
    "JobsTable",
    "MediaTable",
    "PostsTable",
    "SchemaVersionTable",
    "SitesTable",
    "ThreadsTable",
]
