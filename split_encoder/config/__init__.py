"""
Configuration Package for the Split Encoder.

This package centralizes the static configuration settings of the application.
Keeping them apart from the orchestration logic makes it possible to tune
stage weights, file names or thread limits without touching the pipeline code.

This package includes settings for:
- Common application settings like the logging format, log stream keys,
  job statuses and user-overridable paths (`config.user.yaml`).
- Video stage parameters: partition thread limits, pass-1 speed and the
  options that only make sense for video encoders.
- Audio stage parameters: the fixed audio artifact name and its progress weight.
"""
