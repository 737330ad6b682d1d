"""
Learning Profile Engine
Progressive multi-source consolidation of child-development assessments
"""
__version__ = "0.1.0"
