"""
Work Diary - team daily journal with comments, reactions and todos
"""
__version__ = "1.0.0"
