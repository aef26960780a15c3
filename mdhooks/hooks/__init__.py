"""Hook runtimes executed by generated artifacts.

validator.py runs a single prompt-based check; router.py discovers,
selects and fans out to other generated validators.
"""
