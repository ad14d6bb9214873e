"""
File access control: checker chain and signed access tokens.
"""

from .access import AccessVerdict, FileAccessChecker, FileAccessCheckerChain
from .checkers import build_default_chain, inquiry_attachment_checker, notice_attachment_checker
from .file_token import FileTokenPayload, generate_file_token, issue_file_token, verify_file_token

__all__ = [
    "AccessVerdict", "FileAccessChecker", "FileAccessCheckerChain",
    "build_default_chain", "inquiry_attachment_checker", "notice_attachment_checker",
    "FileTokenPayload", "generate_file_token", "issue_file_token", "verify_file_token",
]
