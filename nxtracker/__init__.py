"""
nxtracker package

Tracks Nintendo Switch homebrew projects on GitHub and serves them as a
searchable list.

Key responsibilities are split across modules:
- `config.py`: load projects.yml / firmware.yml into typed settings
- `github_client.py`: isolated GitHub REST API interactions (repo / latest release)
- `collector.py`: sequential fetch loop and the projects.json writer
- `presenter.py`: pure filter/sort/paginate engine over projects.json
- `cli.py`: CLI entrypoint and orchestration (`collect`, `view`)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "1.0.0"
