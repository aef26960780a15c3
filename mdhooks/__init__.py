"""mdhooks - compile markdown hook definitions into Claude-powered validators.

Definitions are parsed (lib/parser.py), compiled into standalone scripts
(lib/generator.py) and executed by the hook runtimes in hooks/.
"""

__version__ = "1.0.0"
