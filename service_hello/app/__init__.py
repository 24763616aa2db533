"""
Hello Service package.

A demo service that drives the metrics façade: `/hello` updates a counter,
a gauge and a histogram, and `/metrics` and `/jsonmetrics` expose them next to
the default runtime metrics.
"""
