"""Topic construction, merging and finalisation."""

from .builder import BuildContext, IncludeDirective, TopicBuilder, include_directives
from .merge import MergeResolver, finalize_topics, merge_pair

__all__ = [
    "BuildContext",
    "IncludeDirective",
    "MergeResolver",
    "TopicBuilder",
    "finalize_topics",
    "include_directives",
    "merge_pair",
]
