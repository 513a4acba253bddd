"""
Scripture gateway.

Obtains scripture text, key takeaways, scores, takeaway validations and
verse suggestions from interchangeable backends, falling back through them
in priority order.
"""

__version__ = "1.0.0"
