"""Discovery of branch and pull request heads on Bitbucket-style hosting."""

__version__ = "0.1.0"
