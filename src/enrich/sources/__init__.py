"""Context sources: documentation, project facts and code snippets."""

from .base import (
    ContextSource,
    DetectedFramework,
    FetchConstraints,
    SourceQuery,
    SourceResult,
)
from .docs import DocumentationSource, extract_topic
from .facts import ProjectFactsSource
from .project import CodeSnippet, ProjectFact, ProjectInspector
from .snippets import SnippetSource

__all__ = [
    "CodeSnippet",
    "ContextSource",
    "DetectedFramework",
    "DocumentationSource",
    "FetchConstraints",
    "ProjectFact",
    "ProjectFactsSource",
    "ProjectInspector",
    "SnippetSource",
    "SourceQuery",
    "SourceResult",
    "extract_topic",
]
