"""Helpers for building fake Octopus API responses."""

import json

import requests


def make_response(payload=None, status_code=200, text=None):
    """Build a requests.Response carrying a JSON payload."""
    response = requests.Response()
    response.status_code = status_code
    body = text if text is not None else json.dumps(payload)
    response._content = body.encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    response.url = "https://api.octopus.energy/v1/"
    return response


def result(start, end, consumption):
    return {"consumption": consumption, "interval_start": start, "interval_end": end}


def envelope(*results):
    return {"count": len(results), "next": None, "previous": None, "results": list(results)}
