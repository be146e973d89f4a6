"""Release Notes API.

A small service that mirrors GitHub release notes into a local store,
keeps them fresh from release webhooks, and serves them (together with
build-pack and Dockerfile template metadata) over HTTP.
"""

__version__ = "0.1.0"
