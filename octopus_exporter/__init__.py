"""Octopus Energy Prometheus exporter package.

Queries the Octopus Energy consumption API on every Prometheus scrape and
republishes the most recent reading of each configured meter as a gauge.
"""

__version__ = "0.1.0"
