"""Tests for the structural converters (triggers, vendor packages, partitions, materialized views, hints, PL/SQL bodies, packages, routines, sequences)."""

from sqlswitch.services.sql_conversion.converters.structural import (
    HintConverter,
    MaterializedViewConverter,
    PackageConverter,
    ProcedureBodyConverter,
    PartitionConverter,
    RoutineConverter,
    SequenceConverter,
    TriggerConverter,
    VendorRuntimeConverter,
    get_partition_info,
    get_used_packages,
    parse_hints,
    parse_package,
    parse_routine,
    parse_sequence_options,
    parse_trigger,
    remove_all_hints,
    validate_trigger,
)
from sqlswitch.services.sql_conversion.models import DialectType, WarningSeverity, WarningType

O = DialectType.ORACLE
M = DialectType.MYSQL
P = DialectType.POSTGRESQL

TRIGGER_SQL = """CREATE OR REPLACE TRIGGER trg_emp_updated
BEFORE UPDATE ON emp
FOR EACH ROW
BEGIN
  :NEW.updated_at := SYSDATE;
END;"""

PARTITIONED_SQL = """CREATE TABLE sales (id NUMBER, amount NUMBER)
PARTITION BY RANGE (id) (
  PARTITION p1 VALUES LESS THAN (100),
  PARTITION p2 VALUES LESS THAN (MAXVALUE)
)"""


class TestTriggerConverter:
    """TriggerConverter tests."""

    def test_parse_trigger_header_and_body(self) -> None:
        """Name, timing, events, table and body are extracted."""
        # When
        info = parse_trigger(TRIGGER_SQL)

        # Then
        assert info is not None
        assert info.bare_name == "trg_emp_updated"
        assert info.timing == "BEFORE"
        assert info.events == ["UPDATE"]
        assert info.table == "emp"
        assert info.for_each_row
        assert info.body == ":NEW.updated_at := SYSDATE;"

    def test_oracle_trigger_to_mysql(self) -> None:
        """Row references lose their colon, assignments become SET and SYSDATE becomes NOW()."""
        # Given
        warnings, applied_rules = [], []

        # When
        result = TriggerConverter().convert(TRIGGER_SQL, O, M, warnings, applied_rules)

        # Then
        assert "CREATE TRIGGER trg_emp_updated" in result
        assert "BEFORE UPDATE ON emp" in result
        assert "SET NEW.updated_at = NOW();" in result
        assert ":NEW" not in result
        assert "Oracle trigger -> MySQL trigger: trg_emp_updated" in applied_rules

    def test_invalid_trigger_is_returned_unchanged(self) -> None:
        """A trigger without a body is reported, not converted."""
        # Given
        sql = "CREATE TRIGGER broken BEFORE INSERT ON emp FOR EACH ROW"
        warnings = []

        # When
        result = TriggerConverter().convert(sql, O, M, warnings, [])

        # Then
        assert result == sql
        assert validate_trigger(sql) == ["BEGIN ... END block not found"]
        assert [w.severity for w in warnings] == [WarningSeverity.ERROR]

    def test_oracle_trigger_to_postgresql_function(self) -> None:
        """A BEFORE row trigger becomes a plpgsql function returning NEW plus EXECUTE FUNCTION."""
        # Given
        applied_rules = []

        # When
        result = TriggerConverter().convert(TRIGGER_SQL, O, P, [], applied_rules)

        # Then
        assert result.startswith("CREATE OR REPLACE FUNCTION trg_emp_updated_func()\nRETURNS TRIGGER\n"
                                 "LANGUAGE plpgsql\nAS $$")
        assert "    RETURN NEW;\nEND;\n$$;" in result
        assert "CREATE TRIGGER trg_emp_updated\nBEFORE UPDATE ON emp\nFOR EACH ROW\n" in result
        assert result.endswith("EXECUTE FUNCTION trg_emp_updated_func()")
        assert ":NEW" not in result
        assert "Oracle trigger -> PostgreSQL trigger function: trg_emp_updated" in applied_rules

    def test_after_trigger_predicates_become_tg_op(self) -> None:
        """INSERTING / UPDATING test TG_OP and an AFTER trigger returns NULL."""
        # Given
        sql = """CREATE OR REPLACE TRIGGER trg_emp_audit
AFTER INSERT OR UPDATE ON emp
FOR EACH ROW
BEGIN
  IF INSERTING THEN
    INSERT INTO emp_audit (id, op) VALUES (:NEW.id, 'I');
  ELSIF UPDATING THEN
    INSERT INTO emp_audit (id, op) VALUES (:NEW.id, 'U');
  END IF;
END;"""

        # When
        result = TriggerConverter().convert(sql, O, P, [], [])

        # Then
        assert "IF TG_OP = 'INSERT' THEN" in result
        assert "ELSIF TG_OP = 'UPDATE' THEN" in result
        assert "VALUES (NEW.id, 'I')" in result
        assert "    RETURN NULL;" in result
        assert "AFTER INSERT OR UPDATE ON emp" in result
        assert "EXECUTE FUNCTION trg_emp_audit_func()" in result

    def test_raise_application_error_becomes_signal_for_mysql(self) -> None:
        """RAISE_APPLICATION_ERROR inside a trigger becomes SIGNAL SQLSTATE '45000'."""
        # Given
        sql = """CREATE OR REPLACE TRIGGER trg_emp_check
BEFORE INSERT ON emp
FOR EACH ROW
BEGIN
  IF :NEW.salary < 0 THEN
    RAISE_APPLICATION_ERROR(-20001, 'Salary must be positive');
  END IF;
END;"""

        # When
        result = TriggerConverter().convert(sql, O, M, [], [])

        # Then
        assert "SIGNAL SQLSTATE '45000' SET MESSAGE_TEXT = 'Salary must be positive';" in result
        assert "RAISE_APPLICATION_ERROR" not in result
        assert "IF NEW.salary < 0 THEN" in result


class TestVendorRuntimeConverter:
    """VendorRuntimeConverter tests."""

    def test_package_without_equivalent_gets_placeholder(self) -> None:
        """UTL_FILE calls become NULL placeholders with one ERROR."""
        # Given
        sql = "SELECT UTL_FILE.FOPEN('/tmp', 'out.txt', 'w') FROM dual"
        warnings, applied_rules = [], []

        # When
        result = VendorRuntimeConverter().convert(sql, O, P, warnings, applied_rules)

        # Then
        assert "NULL /* UTL_FILE.FOPEN" in result
        assert len(warnings) == 1
        assert warnings[0].severity is WarningSeverity.ERROR
        assert "UTL_FILE" in warnings[0].message
        assert applied_rules == ["UTL_FILE.FOPEN -> NULL placeholder"]

    def test_used_packages_in_order(self) -> None:
        """Package names are listed once, in order, ignoring literals."""
        # Given
        sql = "BEGIN DBMS_OUTPUT.PUT_LINE('UTL_HTTP.x'); UTL_FILE.FCLOSE(f); DBMS_OUTPUT.NEW_LINE; END;"

        # When / Then
        assert get_used_packages(sql) == ["DBMS_OUTPUT", "UTL_FILE"]

    def test_oracle_compatible_target_is_untouched(self) -> None:
        """Tibero ships the same packages, so nothing changes."""
        # Given
        sql = "SELECT UTL_FILE.FOPEN('/tmp', 'out.txt', 'w') FROM dual"
        warnings, applied_rules = [], []

        # When
        result = VendorRuntimeConverter().convert(sql, O, DialectType.TIBERO, warnings, applied_rules)

        # Then
        assert result == sql
        assert warnings == [] and applied_rules == []

    def test_crypto_hash_for_postgresql_needs_pgcrypto(self) -> None:
        """DBMS_CRYPTO.HASH with HASH_SH256 becomes digest() and points at pgcrypto."""
        # Given
        sql = "SELECT DBMS_CRYPTO.HASH(payload, DBMS_CRYPTO.HASH_SH256) FROM docs"
        warnings = []

        # When
        result = VendorRuntimeConverter().convert(sql, O, P, warnings, [])

        # Then
        assert result == "SELECT digest(payload, 'sha256') FROM docs"
        assert [w.type for w in warnings] == [WarningType.COMPATIBILITY_ISSUE]
        assert "pgcrypto" in warnings[0].suggestion

    def test_crypto_hash_for_mysql(self) -> None:
        """SHA-2 constants map to SHA2() with the bit length, numeric code 3 to SHA1()."""
        # Given
        sql = "SELECT DBMS_CRYPTO.HASH(payload, DBMS_CRYPTO.HASH_SH512), DBMS_CRYPTO.HASH(payload, 3) FROM docs"

        # When
        result = VendorRuntimeConverter().convert(sql, O, M, [], [])

        # Then
        assert result == "SELECT SHA2(payload, 512), SHA1(payload) FROM docs"


class TestPartitionConverter:
    """PartitionConverter tests."""

    def test_get_partition_info(self) -> None:
        """RANGE partitions and the MAXVALUE bound are parsed."""
        # When
        info = get_partition_info(PARTITIONED_SQL)

        # Then
        assert info is not None
        assert info.partition_type.value == "RANGE"
        assert info.columns == ["id"]
        assert [p.name for p in info.partitions] == ["p1", "p2"]
        assert info.partitions[0].bounds == ["100"]
        assert info.partitions[1].is_max_value

    def test_oracle_range_to_postgresql_children(self) -> None:
        """Each partition becomes a PARTITION OF child table."""
        # Given
        applied_rules = []

        # When
        result = PartitionConverter().convert(PARTITIONED_SQL, O, P, [], applied_rules)

        # Then
        assert "PARTITION BY RANGE (id)" in result
        assert "CREATE TABLE sales_p1 PARTITION OF sales FOR VALUES FROM (MINVALUE) TO (100)" in result
        assert "CREATE TABLE sales_p2 PARTITION OF sales FOR VALUES FROM (100) TO (MAXVALUE)" in result
        assert any("PostgreSQL declarative partitions" in rule for rule in applied_rules)

    def test_non_partitioned_table_has_no_info(self) -> None:
        """A table without PARTITION BY has no partition info."""
        # When / Then
        assert get_partition_info("CREATE TABLE t (id NUMBER)") is None

    def test_interval_partitioning_is_dropped_with_warning(self) -> None:
        """INTERVAL partitioning has no PostgreSQL counterpart."""
        # Given
        sql = """CREATE TABLE orders (id NUMBER, created DATE)
PARTITION BY RANGE (created) INTERVAL (NUMTOYMINTERVAL(1, 'MONTH')) (
  PARTITION p2024 VALUES LESS THAN (TO_DATE('2025-01-01', 'YYYY-MM-DD'))
)"""
        warnings, applied_rules = [], []

        # When
        result = PartitionConverter().convert(sql, O, P, warnings, applied_rules)

        # Then
        assert "NUMTOYMINTERVAL" not in result
        assert "CREATE TABLE orders_p2024 PARTITION OF orders" in result
        assert any(w.message == "PostgreSQL has no INTERVAL partitioning" for w in warnings)
        assert "pg_partman" in next(w.suggestion for w in warnings if "INTERVAL" in w.message)
        assert "INTERVAL partitioning removed (pg_partman recommended)" in applied_rules


class TestMaterializedViewConverter:
    """MaterializedViewConverter tests."""

    def test_drop_for_mysql(self) -> None:
        """The emulation table and refresh procedure are dropped."""
        # When
        result = MaterializedViewConverter().convert("DROP MATERIALIZED VIEW mv_sales", O, M, [], [])

        # Then
        assert result == "DROP TABLE IF EXISTS mv_sales;\nDROP PROCEDURE IF EXISTS mv_sales_refresh"

    def test_create_for_mysql_is_emulated(self) -> None:
        """A table plus a refresh procedure replaces the view."""
        # Given
        sql = "CREATE MATERIALIZED VIEW mv_sales BUILD IMMEDIATE REFRESH COMPLETE ON DEMAND AS SELECT id FROM sales"
        warnings = []

        # When
        result = MaterializedViewConverter().convert(sql, O, M, warnings, [])

        # Then
        assert "CREATE TABLE mv_sales AS" in result
        assert "CREATE PROCEDURE mv_sales_refresh()" in result
        assert "TRUNCATE TABLE mv_sales;" in result
        assert warnings

    def test_deferred_fast_on_commit_for_postgresql(self) -> None:
        """BUILD DEFERRED becomes WITH NO DATA; refresh and rewrite options are reported."""
        # Given
        sql = ("CREATE MATERIALIZED VIEW mv_sales BUILD DEFERRED REFRESH FAST ON COMMIT "
               "ENABLE QUERY REWRITE AS SELECT id FROM sales")
        warnings = []

        # When
        result = MaterializedViewConverter().convert(sql, O, P, warnings, [])

        # Then
        assert result == "CREATE MATERIALIZED VIEW mv_sales AS\nSELECT id FROM sales\nWITH NO DATA"
        assert [w.message for w in warnings] == [
            "PostgreSQL does not refresh materialized views ON COMMIT",
            "PostgreSQL has no incremental (FAST) refresh",
            "PostgreSQL has no query rewrite for materialized views",
        ]
        assert warnings[0].severity is WarningSeverity.WARNING


class TestHintConverter:
    """HintConverter and hint helper tests."""

    def test_parse_hints(self) -> None:
        """FULL and PARALLEL carry their table and degree."""
        # When
        hints = parse_hints("FULL(t) PARALLEL(t, 4)")

        # Then
        assert [h.type.value for h in hints] == ["FULL", "PARALLEL"]
        assert hints[0].table == "t"
        assert hints[1].degree == 4

    def test_index_hint_becomes_force_index(self) -> None:
        """INDEX(alias idx) is placed after the table reference for MySQL."""
        # Given
        sql = "SELECT /*+ INDEX(e emp_idx) */ * FROM emp e WHERE id = 1"
        applied_rules = []

        # When
        result = HintConverter().convert(sql, O, M, [], applied_rules)

        # Then
        assert result == "SELECT * FROM emp e FORCE INDEX (emp_idx) WHERE id = 1"
        assert applied_rules == ["Hint INDEX(e emp_idx) -> FORCE INDEX (emp_idx)"]

    def test_no_index_and_leading_for_mysql(self) -> None:
        """NO_INDEX becomes IGNORE INDEX and LEADING becomes STRAIGHT_JOIN."""
        # Given
        sql = "SELECT /*+ NO_INDEX(e emp_idx) LEADING(e d) */ * FROM emp e JOIN dept d ON e.dept_id = d.id"
        applied_rules = []

        # When
        result = HintConverter().convert(sql, O, M, [], applied_rules)

        # Then
        assert result == "SELECT STRAIGHT_JOIN * FROM emp e IGNORE INDEX (emp_idx) JOIN dept d ON e.dept_id = d.id"
        assert sorted(applied_rules) == [
            "Hint LEADING(e d) -> STRAIGHT_JOIN",
            "Hint NO_INDEX(e emp_idx) -> IGNORE INDEX (emp_idx)",
        ]

    def test_hints_for_postgresql(self) -> None:
        """PARALLEL becomes a SET statement; the rest stays as a pg_hint_plan comment."""
        # Given
        sql = "SELECT /*+ PARALLEL(t, 4) FULL(t) */ * FROM t"
        warnings = []

        # When
        result = HintConverter().convert(sql, O, P, warnings, [])

        # Then
        assert result == ("SET max_parallel_workers_per_gather = 4;\n"
                          "SELECT /* Oracle hint: PARALLEL(t, 4) FULL(t) -- pg_hint_plan: SeqScan(t) */ * FROM t")
        assert len(warnings) == 1
        assert "pg_hint_plan" in warnings[0].suggestion

    def test_remove_all_hints_keeps_literals(self) -> None:
        """Hint-like text inside a literal survives."""
        # Given
        sql = "SELECT /*+ FULL(t) */ '/*+ keep */' FROM t"

        # When
        result = remove_all_hints(sql)

        # Then
        assert result == "SELECT '/*+ keep */' FROM t"


class TestProcedureBodyConverter:
    """ProcedureBodyConverter tests."""

    def test_rowcount_assignment_for_postgresql(self) -> None:
        """v := SQL%ROWCOUNT becomes GET DIAGNOSTICS."""
        # Given
        sql = "BEGIN\n  UPDATE emp SET bonus = 0;\n  v_count := SQL%ROWCOUNT;\nEND;"
        applied_rules = []

        # When
        result = ProcedureBodyConverter().convert(sql, O, P, [], applied_rules)

        # Then
        assert "GET DIAGNOSTICS v_count = ROW_COUNT;" in result
        assert "SQL%ROWCOUNT" not in result
        assert "SQL%ROWCOUNT -> GET DIAGNOSTICS ROW_COUNT" in applied_rules

    def test_exit_when_uses_enclosing_label_for_mysql(self) -> None:
        """EXIT WHEN becomes IF ... THEN LEAVE <label>."""
        # Given
        sql = "BEGIN\n  <<outer_loop>>\n  LOOP\n    EXIT WHEN v_i > 10;\n  END LOOP;\nEND;"

        # When
        result = ProcedureBodyConverter().convert(sql, O, M, [], [])

        # Then
        assert "outer_loop:" in result
        assert "IF v_i > 10 THEN LEAVE outer_loop; END IF;" in result

    def test_predefined_exception_for_postgresql(self) -> None:
        """RAISE NO_DATA_FOUND carries its SQLSTATE."""
        # When
        result = ProcedureBodyConverter().convert("BEGIN\n  RAISE NO_DATA_FOUND;\nEND;", O, P, [], [])

        # Then
        assert "RAISE EXCEPTION 'No data found' USING ERRCODE = 'P0002';" in result

    def test_autonomous_transaction_for_mysql(self) -> None:
        """The pragma is commented out with an ERROR."""
        # Given
        sql = "DECLARE\n  PRAGMA AUTONOMOUS_TRANSACTION;\nBEGIN\n  NULL;\nEND;"
        warnings = []

        # When
        result = ProcedureBodyConverter().convert(sql, O, M, warnings, [])

        # Then
        assert "-- PRAGMA AUTONOMOUS_TRANSACTION; -- not supported by MySQL" in result
        assert [w.severity for w in warnings] == [WarningSeverity.ERROR]

    def test_pipe_row_becomes_return_next_for_postgresql(self) -> None:
        """A pipelined function returns SETOF and PIPE ROW becomes RETURN NEXT."""
        # Given
        sql = "FUNCTION list_ids RETURN id_tab PIPELINED IS\nBEGIN\n  PIPE ROW(v_id);\n  RETURN;\nEND;"
        applied_rules = []

        # When
        result = ProcedureBodyConverter().convert(sql, O, P, [], applied_rules)

        # Then
        assert "RETURNS SETOF id_tab" in result
        assert "PIPELINED" not in result
        assert "RETURN NEXT v_id;" in result
        assert "PIPE ROW -> RETURN NEXT" in applied_rules

    def test_pipe_row_is_commented_out_for_mysql(self) -> None:
        """MySQL has no pipelined functions, so PIPE ROW is commented out with an ERROR."""
        # Given
        sql = "BEGIN\n  PIPE ROW(v_id);\nEND;"
        warnings = []

        # When
        result = ProcedureBodyConverter().convert(sql, O, M, warnings, [])

        # Then
        assert "-- PIPE ROW(v_id); -- not supported by MySQL" in result
        assert [(w.type, w.severity) for w in warnings] == [
            (WarningType.UNSUPPORTED_STATEMENT, WarningSeverity.ERROR)]


PACKAGE_SPEC_SQL = """CREATE OR REPLACE PACKAGE emp_pkg AS
  c_max CONSTANT NUMBER := 100;
  FUNCTION get_name(p_id IN NUMBER) RETURN VARCHAR2;
  PROCEDURE raise_salary(p_id IN NUMBER, p_pct NUMBER);
END emp_pkg;"""


class TestPackageConverter:
    """PackageConverter tests."""

    def test_parse_package_specification(self) -> None:
        """Members and constants of a specification are parsed."""
        # When
        info = parse_package(PACKAGE_SPEC_SQL)

        # Then
        assert info is not None
        assert info.name == "emp_pkg"
        assert not info.is_body
        assert [(m.kind, m.name) for m in info.members] == [("FUNCTION", "get_name"), ("PROCEDURE", "raise_salary")]
        assert info.members[0].parameters == ["p_id IN NUMBER"]
        assert info.members[0].return_type == "VARCHAR2"
        assert info.constants == [("c_max", "NUMBER", "100")]

    def test_specification_to_postgresql_schema(self) -> None:
        """The package becomes a schema and constants become IMMUTABLE functions."""
        # Given
        applied_rules = []

        # When
        result = PackageConverter().convert(PACKAGE_SPEC_SQL, O, P, [], applied_rules)

        # Then
        assert result.startswith("CREATE SCHEMA IF NOT EXISTS emp_pkg;")
        assert "CREATE OR REPLACE FUNCTION emp_pkg.c_max()" in result
        assert "LANGUAGE sql IMMUTABLE" in result
        assert "Oracle package emp_pkg -> PostgreSQL schema emp_pkg" in applied_rules

    def test_not_a_package(self) -> None:
        """Plain statements are not packages."""
        # When / Then
        assert parse_package("SELECT 1 FROM dual") is None


ROUTINE_SQL = """CREATE OR REPLACE PROCEDURE raise_salary(p_id IN NUMBER, p_pct IN NUMBER) IS
  v_salary NUMBER;
BEGIN
  SELECT salary INTO v_salary FROM emp WHERE id = p_id;
  v_salary := v_salary * (1 + p_pct / 100);
  UPDATE emp SET salary = v_salary WHERE id = p_id;
END raise_salary;"""


class TestRoutineConverter:
    """RoutineConverter tests."""

    def test_parse_routine(self) -> None:
        """Kind, name, parameters, declarations and body of a standalone procedure are parsed."""
        # When
        member = parse_routine(ROUTINE_SQL)

        # Then
        assert member is not None
        assert (member.kind, member.name) == ("PROCEDURE", "raise_salary")
        assert member.parameters == ["p_id IN NUMBER", "p_pct IN NUMBER"]
        assert member.declarations == "v_salary NUMBER;"
        assert member.body.startswith("SELECT salary INTO v_salary")

    def test_procedure_to_postgresql(self) -> None:
        """The header gains LANGUAGE plpgsql and the body is wrapped in dollar quotes."""
        # Given
        applied_rules = []

        # When
        result = RoutineConverter().convert(ROUTINE_SQL, O, P, [], applied_rules)

        # Then
        assert result.startswith("CREATE OR REPLACE PROCEDURE raise_salary(")
        assert "\nLANGUAGE plpgsql\nAS $$\nDECLARE\n" in result
        assert "    v_salary := v_salary * (1 + p_pct / 100);" in result
        assert result.endswith("END;\n$$;")
        assert " IS\n" not in result
        assert "PROCEDURE raise_salary header -> postgresql" in applied_rules

    def test_function_to_postgresql_returns(self) -> None:
        """RETURN <type> IS becomes RETURNS <type>."""
        # Given
        sql = "CREATE FUNCTION get_bonus(p_id NUMBER) RETURN NUMBER IS\nBEGIN\n  RETURN 100;\nEND;"

        # When
        result = RoutineConverter().convert(sql, O, P, [], [])

        # Then
        lines = result.splitlines()
        assert lines[0].startswith("CREATE OR REPLACE FUNCTION get_bonus(")
        assert lines[1].startswith("RETURNS ")
        assert lines[2:4] == ["LANGUAGE plpgsql", "AS $$"]
        assert "    RETURN 100;" in lines

    def test_procedure_to_mysql(self) -> None:
        """MySQL gets DELIMITER blocks, IN parameters, DECLARE and SET assignments."""
        # When
        result = RoutineConverter().convert(ROUTINE_SQL, O, M, [], [])

        # Then
        lines = result.splitlines()
        assert lines[:2] == ["DELIMITER //", "DROP PROCEDURE IF EXISTS raise_salary//"]
        assert lines[2].startswith("CREATE PROCEDURE raise_salary(IN p_id ")
        assert any(line.strip().startswith("DECLARE v_salary ") for line in lines)
        assert "    SET v_salary = v_salary * (1 + p_pct / 100);" in lines
        assert lines[-2:] == ["END//", "DELIMITER ;"]

    def test_mysql_routine_is_reported(self) -> None:
        """Routines written for MySQL are left as they are with a warning."""
        # Given
        sql = "CREATE PROCEDURE touch_emp() BEGIN UPDATE emp SET touched = NOW(); END"
        warnings = []

        # When
        result = RoutineConverter().convert(sql, M, P, warnings, [])

        # Then
        assert result == sql
        assert [w.type for w in warnings] == [WarningType.MANUAL_REVIEW_REQUIRED]


class TestSequenceConverter:
    """SequenceConverter tests."""

    def test_parse_sequence_options(self) -> None:
        """START, INCREMENT and CACHE are read; NOCYCLE is not CYCLE."""
        # When
        info = parse_sequence_options(" START WITH 100 INCREMENT BY 5 CACHE 20 NOCYCLE")

        # Then
        assert (info.start, info.increment, info.cache, info.cycle) == (100, 5, 20, False)

    def test_create_for_postgresql_respells_options(self) -> None:
        """NOCYCLE becomes NO CYCLE and NOCACHE is dropped."""
        # Given
        sql = "CREATE SEQUENCE emp_id START WITH 100 INCREMENT BY 1 NOCACHE NOCYCLE"

        # When
        result = SequenceConverter().convert(sql, O, P, [], [])

        # Then
        assert result == "CREATE SEQUENCE emp_id START WITH 100 INCREMENT BY 1 NO CYCLE"

    def test_create_for_mysql_is_emulated(self) -> None:
        """A table and nextval/currval functions replace the sequence."""
        # Given
        sql = "CREATE SEQUENCE emp_id START WITH 100 INCREMENT BY 1 NOCACHE NOCYCLE"
        warnings, applied_rules = [], []

        # When
        result = SequenceConverter().convert(sql, O, M, warnings, applied_rules)

        # Then
        assert "CREATE TABLE emp_id_seq (" in result
        assert "ALTER TABLE emp_id_seq AUTO_INCREMENT = 100;" in result
        assert "CREATE FUNCTION emp_id_nextval() RETURNS BIGINT" in result
        assert "CREATE FUNCTION emp_id_currval() RETURNS BIGINT" in result
        assert result.endswith("DELIMITER ;")
        assert [(w.type, w.severity) for w in warnings] == [
            (WarningType.UNSUPPORTED_STATEMENT, WarningSeverity.WARNING)]
        assert applied_rules == ["CREATE SEQUENCE emp_id -> MySQL table + emp_id_nextval() function"]

    def test_nextval_reference_for_postgresql(self) -> None:
        """seq.NEXTVAL becomes nextval('seq')."""
        # Given
        applied_rules = []

        # When
        result = SequenceConverter().convert("INSERT INTO emp (id) VALUES (emp_id.NEXTVAL)", O, P, [], applied_rules)

        # Then
        assert result == "INSERT INTO emp (id) VALUES (nextval('emp_id'))"
        assert applied_rules == ["emp_id.NEXTVAL -> nextval('emp_id')"]

    def test_nextval_reference_for_mysql(self) -> None:
        """MySQL calls the emulation function and is warned about it."""
        # Given
        warnings = []

        # When
        result = SequenceConverter().convert("INSERT INTO emp (id) VALUES (emp_id.NEXTVAL)", O, M, warnings, [])

        # Then
        assert result == "INSERT INTO emp (id) VALUES (emp_id_nextval())"
        assert [w.type for w in warnings] == [WarningType.PARTIAL_SUPPORT]

    def test_postgresql_nextval_for_oracle(self) -> None:
        """nextval('seq') becomes seq.NEXTVAL."""
        # When
        result = SequenceConverter().convert("SELECT nextval('emp_id')", P, O, [], [])

        # Then
        assert result == "SELECT emp_id.NEXTVAL"

    def test_drop_for_mysql(self) -> None:
        """The emulation functions and table are dropped."""
        # When
        result = SequenceConverter().convert("DROP SEQUENCE emp_id", O, M, [], [])

        # Then
        assert result == ("DROP FUNCTION IF EXISTS emp_id_nextval;\n"
                          "DROP FUNCTION IF EXISTS emp_id_currval;\n"
                          "DROP TABLE IF EXISTS emp_id_seq")
