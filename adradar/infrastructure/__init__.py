# Infrastructure Package
"""
Adapters for the domain interfaces: browsers, session storage, throttling
and diagnosis sinks.
"""
