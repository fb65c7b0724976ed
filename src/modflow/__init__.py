"""
Modflow - AI Content Moderation Workflow

Modflow routes a user submission (text and/or an image) through a fixed
sequence of analysis and decision steps and produces a final disposition
(approved / flagged / rejected) with a human-readable rationale.

Core Components:

- **AI Capabilities**: OpenAI-compatible text analysis, image description and
  image generation, each with a uniform failure contract
- **Pipeline Engine**: Ordered record-to-record steps with per-step error
  containment, so a failing service degrades a run instead of aborting it
- **Decision Policy**: Threshold rules applied after an unsafe image has been
  replaced, plus rendering of the reasoning string
- **Moderation Service**: Loads a stored submission, tracks its progress stage,
  persists the verdict and uploads accepted replacement images

Usage:
    from modflow.main import main
    main(["run", "<submission_id>"])
"""
