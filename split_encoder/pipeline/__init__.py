"""
This package contains the encoding pipeline of the Split Encoder application.

`plan` turns one encode request into an immutable job graph, and `executor`
runs that graph against an execution substrate, aggregating progress and
logs and tearing everything down on the first failure.
"""
