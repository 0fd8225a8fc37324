"""Database query functions for Docreview.

This module provides async query functions for all database entities:
- Document review lookup, search and workload aggregation
- Reviewer profile CRUD and assignment ranking
- Workflow configuration lookup
"""

from docreview.database.queries.review import (
    ReviewSearchParams,
    get_review,
    get_reviewer_workload,
    list_reviews_created_between,
    list_reviews_for_reviewer,
    search_reviews,
)
from docreview.database.queries.reviewer import (
    create_reviewer,
    get_reviewer,
    list_reviewers,
    update_reviewer,
)
from docreview.database.queries.workflow import (
    create_workflow,
    get_workflow,
    list_active_workflows,
)

__all__ = [
    # Review queries
    "ReviewSearchParams",
    "get_review",
    "get_reviewer_workload",
    "list_reviews_created_between",
    "list_reviews_for_reviewer",
    "search_reviews",
    # Reviewer queries
    "create_reviewer",
    "get_reviewer",
    "list_reviewers",
    "update_reviewer",
    # Workflow queries
    "create_workflow",
    "get_workflow",
    "list_active_workflows",
]
