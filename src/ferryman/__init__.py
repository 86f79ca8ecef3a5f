"""Ferryman: Jenkins pipeline to GitLab CI/CD migration."""

__version__ = "0.1.0"
