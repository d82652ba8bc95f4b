"""Markdown task parsing and parent completion propagation."""

from .buffer import Annotation, Change, LineBuffer, Transaction
from .completion import Decision, ParentAction, decide
from .config import PropagationSettings, load_settings
from .converter import TaskListConverter, convert_task_list, toggle_task
from .indentation import direct_children, find_parent
from .interceptor import ParentCompletionInterceptor
from .markdown_parser import parse_document, parse_task_line
from .models import MetadataFormat, Task, diff_tasks

__all__ = [
    "Annotation",
    "Change",
    "Decision",
    "LineBuffer",
    "MetadataFormat",
    "ParentAction",
    "ParentCompletionInterceptor",
    "PropagationSettings",
    "Task",
    "TaskListConverter",
    "Transaction",
    "convert_task_list",
    "decide",
    "diff_tasks",
    "direct_children",
    "find_parent",
    "load_settings",
    "parse_document",
    "parse_task_line",
    "toggle_task",
]
