"""docmapper — Object-document mapper for OpenSearch and Elasticsearch."""

from docmapper.core.manager import DocumentManager
from docmapper.models.document import Document
from docmapper.models.search import SearchDescriptor

__version__ = "0.1.0"

__all__ = ["Document", "DocumentManager", "SearchDescriptor", "__version__"]
