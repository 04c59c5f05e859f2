"""
promptpack - bundle a codebase into one text stream for LLM prompts.

This package walks a directory tree, filters entries through the root
.gitignore, hidden-file policy and include/exclude extension lists, and
writes every remaining text file to a single Markdown or plain-text
document (or to the console), each file framed by a header with its
relative path.
"""

__version__ = "0.1.0"
__author__ = "promptpack contributors"
