"""
cruxfeed: activity feed and engagement core of a climbing-gym social app.

Layers:
    domain          entities, document codecs, ports, errors
    infrastructure  document store / blob storage adapters, caches, config
    repository      one repository per aggregate
    feed            feed composition and request superseding
"""

__version__ = "0.1.0"
