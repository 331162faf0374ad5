"""
Oracle built-in package calls (DBMS_*, UTL_*) and RAISE_APPLICATION_ERROR.

Each call site is matched by package, member and argument count and replaced
with the target's native equivalent. Calls with no possible equivalent
(file system, HTTP, job scheduler, dynamic cursors, error backtraces) become a
``NULL /* ... */`` placeholder and always raise an ERROR warning.

FUNCTIONS:
==========
  - VendorRuntimeConverter.convert(): rewrite every vendor call in a statement.
  - has_vendor_calls(): quick check used by the fallback pipeline.
  - get_used_packages(): distinct package names referenced by a statement.
  - raise_application_error_replacement(): shared by the procedure/trigger converters.
"""
import re
from typing import Callable, Dict, List, Optional

from ...models import ConversionWarning, DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import (
    NOT_FOUND,
    find_matching_bracket,
    is_string_literal,
    mask_literals,
    split_arguments,
)
from ..base_converter import BaseConverter

_VENDOR_REFERENCE = re.compile(
    r"(?<![\w.$#])(?:(?P<pkg>(?:DBMS|UTL)_\w+)\.(?P<member>\w+)|(?P<raise>RAISE_APPLICATION_ERROR))(?P<call>\s*\()?",
    re.IGNORECASE,
)
_PACKAGE_NAME = re.compile(r"(?<![\w.$#])((?:DBMS|UTL)_\w+)\.", re.IGNORECASE)

# Packages with no target-side equivalent at all.
_NO_EQUIVALENT = {
    "UTL_FILE": {
        DialectType.MYSQL: "Use LOAD DATA INFILE / SELECT ... INTO OUTFILE or move file I/O to the application",
        DialectType.POSTGRESQL: "Use COPY or pg_read_file/pg_write_file, or move file I/O to the application",
    },
    "UTL_HTTP": {
        DialectType.MYSQL: "Move HTTP calls to the application layer",
        DialectType.POSTGRESQL: "Use the pgsql-http extension or move HTTP calls to the application layer",
    },
    "DBMS_SQL": {
        DialectType.MYSQL: "Use PREPARE / EXECUTE dynamic SQL",
        DialectType.POSTGRESQL: "Use EXECUTE ... USING in PL/pgSQL",
    },
    "DBMS_SCHEDULER": {
        DialectType.MYSQL: "Use CREATE EVENT with the MySQL event scheduler",
        DialectType.POSTGRESQL: "Use the pg_cron extension",
    },
    "DBMS_JOB": {
        DialectType.MYSQL: "Use CREATE EVENT with the MySQL event scheduler",
        DialectType.POSTGRESQL: "Use the pg_cron extension",
    },
}

_HASH_BITS = {"SHA256": "256", "SHA384": "384", "SHA512": "512"}
# DBMS_CRYPTO spells SHA as SH (HASH_SH256); the numeric codes are the package constants.
_HASH_CONSTANT = re.compile(r"\bHASH_(MD4|MD5|SHA?1|SHA?256|SHA?384|SHA?512)\b", re.IGNORECASE)
_HASH_CODES = {"1": "MD4", "2": "MD5", "3": "SHA1", "4": "SHA256", "5": "SHA384", "6": "SHA512"}


def _hash_algorithm(argument: str) -> Optional[str]:
    """MD4 / MD5 / SHA1 / SHA256 / SHA384 / SHA512 for a DBMS_CRYPTO.HASH type argument."""
    code = argument.strip()
    if code in _HASH_CODES:
        return _HASH_CODES[code]
    match = _HASH_CONSTANT.search(code)
    if not match:
        return None
    name = match.group(1).upper()
    return name if name.startswith(("MD", "SHA")) else "SHA" + name[2:]


def has_vendor_calls(sql: str) -> bool:
    masked = mask_literals(sql)
    return bool(_PACKAGE_NAME.search(masked) or re.search(r"\bRAISE_APPLICATION_ERROR\b", masked, re.IGNORECASE))


def get_used_packages(sql: str) -> List[str]:
    masked = mask_literals(sql)
    return list(dict.fromkeys(m.group(1).upper() for m in _PACKAGE_NAME.finditer(masked)))


def raise_application_error_replacement(args: List[str], target: DialectType,
                                        warnings: List[ConversionWarning]) -> Optional[str]:
    """``RAISE_APPLICATION_ERROR(code, msg)`` as a MySQL SIGNAL or a PostgreSQL RAISE EXCEPTION."""
    if len(args) < 2:
        return None
    code, message = args[0], args[1]
    if target is DialectType.MYSQL:
        if not is_string_literal(message) and not re.fullmatch(r"[\w.]+", message):
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        "SIGNAL MESSAGE_TEXT only accepts a literal or a variable",
                        suggestion="Assign the message expression to a variable before SIGNAL")
        return f"SIGNAL SQLSTATE '45000' SET MESSAGE_TEXT = {message}"
    if target is DialectType.POSTGRESQL:
        return f"RAISE EXCEPTION '%', {message} USING ERRCODE = 'P0001', HINT = 'Oracle error {code}'"
    return None


def _placeholder(reference: str, reason: str) -> str:
    return f"NULL /* {reference}: {reason} */"


class VendorRuntimeConverter(BaseConverter):
    """Rewrites Oracle built-in package calls for MySQL and PostgreSQL."""
    name = "vendor_runtime"
    construct_pattern = re.compile(r"\b(?:DBMS|UTL)_\w+\s*\.|\bRAISE_APPLICATION_ERROR\b", re.IGNORECASE)

    def __init__(self):
        super().__init__()
        self._handlers: Dict[str, Callable] = {
            "DBMS_OUTPUT.PUT_LINE": self._put_line,
            "DBMS_OUTPUT.PUT": self._put_line,
            "DBMS_OUTPUT.NEW_LINE": self._no_op,
            "DBMS_OUTPUT.ENABLE": self._no_op,
            "DBMS_OUTPUT.DISABLE": self._no_op,
            "DBMS_RANDOM.VALUE": self._random_value,
            "DBMS_RANDOM.STRING": self._random_string,
            "DBMS_RANDOM.SEED": self._no_op,
            "DBMS_LOB.GETLENGTH": self._lob_getlength,
            "DBMS_LOB.SUBSTR": self._lob_substr,
            "DBMS_LOB.INSTR": self._lob_instr,
            "DBMS_LOB.APPEND": self._lob_append,
            "DBMS_UTILITY.GET_TIME": self._utility_get_time,
            "DBMS_UTILITY.FORMAT_ERROR_STACK": self._utility_error_stack,
            "DBMS_UTILITY.FORMAT_ERROR_BACKTRACE": self._utility_backtrace,
            "DBMS_LOCK.SLEEP": self._lock_sleep,
            "DBMS_SESSION.SLEEP": self._lock_sleep,
            "DBMS_CRYPTO.HASH": self._crypto_hash,
            "DBMS_CRYPTO.ENCRYPT": self._crypto_cipher,
            "DBMS_CRYPTO.DECRYPT": self._crypto_cipher,
        }

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        # Tibero ships Oracle-compatible packages, so only MySQL/PostgreSQL need rewriting.
        return source_dialect.is_oracle_compatible and target_dialect in (DialectType.MYSQL, DialectType.POSTGRESQL)

    def _convert(self, sql, source_dialect, target_dialect, warnings, applied_rules):
        text = sql
        masked = mask_literals(text)
        for match in reversed(list(_VENDOR_REFERENCE.finditer(masked))):
            if match.group("raise"):
                reference = "RAISE_APPLICATION_ERROR"
            else:
                reference = f"{match.group('pkg').upper()}.{match.group('member').upper()}"

            args = None
            end = match.end()
            if match.group("call"):
                close = find_matching_bracket(text, match.end())
                if close == NOT_FOUND:
                    continue
                args = split_arguments(text[match.end():close - 1])
                end = close

            replacement = self._replacement(reference, args, target_dialect, warnings)
            if replacement is None:
                continue
            text = text[:match.start()] + replacement + text[end:]
            if replacement.startswith("NULL /*"):
                applied_rules.append(f"{reference} -> NULL placeholder")
            else:
                applied_rules.append(f"{reference} -> {target_dialect.value} equivalent")
        return text

    def _replacement(self, reference: str, args: Optional[List[str]], target: DialectType,
                     warnings: List[ConversionWarning]) -> Optional[str]:
        if reference == "RAISE_APPLICATION_ERROR":
            if args is None:
                return None
            return raise_application_error_replacement(args, target, warnings)

        package = reference.split(".")[0]
        if package in _NO_EQUIVALENT:
            if args is None:
                # Constants and types (DBMS_SQL.NATIVE, UTL_FILE.FILE_TYPE) are reported, not replaced.
                if reference.endswith("_TYPE"):
                    add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                                f"{reference} declarations have no {target.value} equivalent",
                                suggestion=_NO_EQUIVALENT[package][target])
                return None
            add_warning(warnings, WarningType.UNSUPPORTED_FUNCTION,
                        f"{reference} has no {target.value} equivalent; replaced with a NULL placeholder",
                        WarningSeverity.ERROR, _NO_EQUIVALENT[package][target])
            return _placeholder(reference, "manual conversion required")

        handler = self._handlers.get(reference)
        if handler is None:
            if args is None:
                return None
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"{reference} is not converted automatically",
                        suggestion=f"Find a {target.value} replacement for {package}")
            return None
        return handler(reference, args or [], target, warnings)

    # ------------------------------------------------------------------
    # DBMS_OUTPUT / DBMS_RANDOM
    # ------------------------------------------------------------------

    def _put_line(self, reference, args, target, warnings):
        if not args:
            return None
        message = args[0]
        if target is DialectType.MYSQL:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"{reference} has no MySQL equivalent; replaced with a debug SELECT",
                        suggestion="Use a logging table inside stored procedures")
            return f"SELECT {message} AS debug_output"
        if is_string_literal(message):
            return f"RAISE NOTICE {message.replace('%', '%%')}"
        return f"RAISE NOTICE '%', {message}"

    def _no_op(self, reference, args, target, warnings):
        return "DO 0" if target is DialectType.MYSQL else "NULL"

    def _random_value(self, reference, args, target, warnings):
        rand = "RAND()" if target is DialectType.MYSQL else "random()"
        if len(args) == 2:
            low, high = args
            return f"({rand} * ({high} - {low}) + {low})"
        return rand

    def _random_string(self, reference, args, target, warnings):
        if len(args) != 2:
            return None
        kind = args[0].strip("'").upper()
        length = args[1]
        add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                    f"DBMS_RANDOM.STRING emulated with MD5 of a random value on {target.value}",
                    suggestion="Only hexadecimal characters are produced; write a helper function if needed")
        source = "MD5(RAND())" if target is DialectType.MYSQL else "md5(random()::text)"
        expression = f"SUBSTRING({source} FROM 1 FOR {length})"
        if kind in ("U", "X"):
            return f"UPPER({expression})"
        if kind == "L":
            return f"LOWER({expression})"
        return expression

    # ------------------------------------------------------------------
    # DBMS_LOB
    # ------------------------------------------------------------------

    def _lob_getlength(self, reference, args, target, warnings):
        if len(args) != 1:
            return None
        return f"LENGTH({args[0]})" if target is DialectType.MYSQL else f"octet_length({args[0]})"

    def _lob_substr(self, reference, args, target, warnings):
        if not args:
            return None
        lob = args[0]
        amount = args[1] if len(args) > 1 else "32767"
        offset = args[2] if len(args) > 2 else "1"
        if target is DialectType.MYSQL:
            return f"SUBSTRING({lob}, {offset}, {amount})"
        return f"substring({lob} from {offset} for {amount})"

    def _lob_instr(self, reference, args, target, warnings):
        if len(args) < 2:
            return None
        lob, pattern = args[0], args[1]
        if target is DialectType.MYSQL:
            offset = f", {args[2]}" if len(args) > 2 else ""
            return f"LOCATE({pattern}, {lob}{offset})"
        if len(args) > 2:
            add_warning(warnings, WarningType.SEMANTIC_DIFFERENCE,
                        "DBMS_LOB.INSTR offset/nth arguments are ignored by position()")
        return f"position({pattern} in {lob})"

    def _lob_append(self, reference, args, target, warnings):
        if len(args) != 2:
            return None
        dest, src = args
        if target is DialectType.MYSQL:
            return f"SET {dest} = CONCAT({dest}, {src})"
        return f"{dest} := {dest} || {src}"

    # ------------------------------------------------------------------
    # DBMS_UTILITY / DBMS_LOCK
    # ------------------------------------------------------------------

    def _utility_get_time(self, reference, args, target, warnings):
        if target is DialectType.MYSQL:
            return "(UNIX_TIMESTAMP() * 100)"
        return "(extract(epoch from clock_timestamp()) * 100)::integer"

    def _utility_error_stack(self, reference, args, target, warnings):
        if target is DialectType.POSTGRESQL:
            return "SQLERRM"
        add_warning(warnings, WarningType.UNSUPPORTED_FUNCTION,
                    "DBMS_UTILITY.FORMAT_ERROR_STACK has no MySQL equivalent",
                    suggestion="Use GET DIAGNOSTICS CONDITION 1 @msg = MESSAGE_TEXT")
        return _placeholder(reference, "use GET DIAGNOSTICS")

    def _utility_backtrace(self, reference, args, target, warnings):
        suggestion = ("Use GET STACKED DIAGNOSTICS v = PG_EXCEPTION_CONTEXT"
                      if target is DialectType.POSTGRESQL else "Use GET DIAGNOSTICS inside a handler")
        add_warning(warnings, WarningType.UNSUPPORTED_FUNCTION,
                    f"DBMS_UTILITY.FORMAT_ERROR_BACKTRACE has no {target.value} equivalent; replaced with a NULL placeholder",
                    WarningSeverity.ERROR, suggestion)
        return _placeholder(reference, "no error backtrace available")

    def _lock_sleep(self, reference, args, target, warnings):
        if len(args) != 1:
            return None
        if target is DialectType.MYSQL:
            return f"DO SLEEP({args[0]})"
        return f"PERFORM pg_sleep({args[0]})"

    # ------------------------------------------------------------------
    # DBMS_CRYPTO
    # ------------------------------------------------------------------

    def _crypto_hash(self, reference, args, target, warnings):
        if len(args) != 2:
            return None
        data = args[0]
        algorithm = _hash_algorithm(args[1])
        if algorithm is None:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"DBMS_CRYPTO.HASH algorithm '{args[1]}' not recognised")
            return None
        if target is DialectType.MYSQL:
            if algorithm == "MD5":
                return f"MD5({data})"
            if algorithm == "SHA1":
                return f"SHA1({data})"
            if algorithm in _HASH_BITS:
                return f"SHA2({data}, {_HASH_BITS[algorithm]})"
            add_warning(warnings, WarningType.UNSUPPORTED_FUNCTION,
                        f"DBMS_CRYPTO.HASH_{algorithm} has no MySQL equivalent")
            return None
        add_warning(warnings, WarningType.COMPATIBILITY_ISSUE,
                    "DBMS_CRYPTO.HASH converted to digest(), which requires the pgcrypto extension",
                    suggestion="CREATE EXTENSION IF NOT EXISTS pgcrypto;")
        return f"digest({data}, '{algorithm.lower()}')"

    def _crypto_cipher(self, reference, args, target, warnings):
        suggestion = ("Use AES_ENCRYPT/AES_DECRYPT or application-level encryption"
                      if target is DialectType.MYSQL else "Use pgcrypto encrypt()/decrypt() or pgp_sym_encrypt()")
        add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                    f"{reference} requires manual conversion", WarningSeverity.ERROR, suggestion)
        return None
