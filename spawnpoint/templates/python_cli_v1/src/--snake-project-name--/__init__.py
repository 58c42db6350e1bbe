"""--TEMPLATE_PROJECT_NAME--: --template-project-description--"""

__version__ = "0.1.0"
