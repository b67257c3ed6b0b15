from commandrelay.github.adapters import IssueCommentStore, WorkflowRunLister, github_created_filter
from commandrelay.github.client import GitHubClient

__all__ = [
    "GitHubClient",
    "IssueCommentStore",
    "WorkflowRunLister",
    "github_created_filter",
]
