"""
AI capabilities for Modflow.

- **ai_clients.py**: OpenAI-compatible reasoning, vision and image generation
  clients, created once per process.
- **analysis.py**: Capability wrappers that validate service output and apply
  each capability's failure contract.
- **prompts.py**: Instructions sent to the services.
"""
