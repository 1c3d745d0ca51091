# Pull Request Review Bot
"""
A GitHub App that reviews pull requests as they are opened: it receives
webhook deliveries, authenticates per installation, fetches the changed
files, generates a review and publishes it back to the pull request.
"""

__version__ = "1.0.0"
