"""Node handlers package, one module per action category:

- triggers.py: Manual Trigger, Schedule Trigger
- code.py: Run Code
- http.py: API Call
- computation.py: Computation
"""

from .triggers import handle_trigger
from .code import handle_run_code
from .http import handle_api_call
from .computation import handle_computation

__all__ = [
    'handle_trigger',
    'handle_run_code',
    'handle_api_call',
    'handle_computation',
]
