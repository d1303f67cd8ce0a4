"""
Split Encoder: parallel two-pass WebM encoding orchestrated from a single
set of ffmpeg options.

The package is layered the same way throughout:

- `config`: static settings and the optional `config.user.yaml` overrides.
- `domain`: value objects (option sets, partitions, jobs) and exceptions.
- `services`: stage-parameter derivation, progress aggregation, log
  multiplexing and the ffmpeg execution pool.
- `pipeline`: plan materialization and the dependency-graph executor.
- `utils`: formatting and ffmpeg helpers.
"""

__version__ = "0.1.0"
