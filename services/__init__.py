"""
Services package for the workflow engine: interpreter, step catalog and
code generator.
"""
