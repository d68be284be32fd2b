"""``python -m gitpushy`` runs the command-line interface."""

from gitpushy.cli import app

if __name__ == "__main__":
    app(prog_name="gitpushy")
