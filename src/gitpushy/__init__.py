"""GitPushy - open pull request dashboard backed by the GitHub REST API."""

__version__ = "0.1.0"
