"""remotedeploy - deploy a containerized app to a remote server behind nginx"""

__version__ = "1.0.0"
