"""Sources of release data.

The service only depends on ReleaseSourceProtocol; GitHubReleaseSource
talks to the GitHub releases API and MockReleaseSource serves canned data.
"""
