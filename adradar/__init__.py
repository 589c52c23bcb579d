"""AdRadar - marketplace listing extraction engine.

Diagnoses headless-browser result pages, extracts and filters ads with
selector fallback chains, rotates authenticated sessions by health score
and throttles requests per site.
"""

__version__ = "0.1.0"
__author__ = "AdRadar Team"
