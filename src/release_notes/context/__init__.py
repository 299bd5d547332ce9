"""Clients for the external sources release data is pulled from.

The service only talks to GitHub today; the protocol in github.py keeps
the fetcher independent of the concrete client.
"""
