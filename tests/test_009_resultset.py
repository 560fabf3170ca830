"""
This file contains tests for the ResultSet and Row classes.
Functions:
- test_fetchone_until_exhausted: End of data is terminal and idempotent.
- test_fetchmany: Batches of the requested size.
- test_arraysize_batches: Rows are fetched from the server arraysize at a time.
- test_row_access: Index, attribute and tagged access to row values.
- test_truncated_value: A value larger than its buffer raises FetchError.
- test_truncation_discards_batch: No row of a batch that failed to decode is returned.
- test_long_column: LONG values are assembled from pieces.
"""

import datetime
from decimal import Decimal

import pytest

from oracle_python import Row
from oracle_python.constants import SQLT
from oracle_python.exceptions import ErrorKind, FetchError, InterfaceError, NotSupportedError, ProgrammingError
from oracle_python.helpers import get_settings
from oracle_python.values import Null, Number, OracleType, Timestamp

from fake_oci import Column

EMP_SQL = "select empno, ename, hiredate, sal, comm from emp"

EMP_ROWS = [
    (7369, "SMITH", datetime.datetime(1980, 12, 17), Decimal("800"), None),
    (7499, "ALLEN", datetime.datetime(1981, 2, 20), Decimal("1600"), Decimal("300")),
    (7521, "WARD", datetime.datetime(1981, 2, 22), Decimal("1250.5"), Decimal("500")),
    (7566, "JONES", datetime.datetime(1981, 4, 2), Decimal("2975"), None),
    (7654, "MARTIN", datetime.datetime(1981, 9, 28), Decimal("1250"), Decimal("1400")),
]


@pytest.fixture
def emp(fake_oci):
    fake_oci.add_query(
        EMP_SQL,
        [
            Column("EMPNO", SQLT.NUM, 22, precision=4, scale=0, nullable=False),
            Column("ENAME", SQLT.CHR, 10, char_size=10),
            Column("HIREDATE", SQLT.DAT, 7),
            Column("SAL", SQLT.NUM, 22, precision=7, scale=2),
            Column("COMM", SQLT.NUM, 22, precision=7, scale=2),
        ],
        EMP_ROWS,
    )


def _result_set(connection, sql=EMP_SQL, arraysize=None):
    stmt = connection.prepare(sql)
    if arraysize is not None:
        stmt.arraysize = arraysize
    stmt.execute()
    return stmt.result_set()


def test_column_types(db_connection, emp):
    rs = _result_set(db_connection)
    assert [c.type for c in rs.columns] == [
        OracleType.NUMBER, OracleType.VARCHAR, OracleType.DATE, OracleType.NUMBER, OracleType.NUMBER,
    ]
    assert rs.columns[0].uses_int64
    assert not rs.columns[3].uses_int64
    assert rs.description[0] == ("EMPNO", OracleType.NUMBER, None, 22, 4, 0, False)


def test_fetchone_until_exhausted(db_connection, emp):
    rs = _result_set(db_connection)
    rows = []
    while True:
        row = rs.fetchone()
        if row is None:
            break
        rows.append(row)
    assert rows == [list(r) for r in EMP_ROWS]
    assert rs.exhausted
    assert rs.rowcount == 5
    assert rs.fetchone() is None
    assert rs.fetchone() is None
    assert rs.fetchmany(3) == []
    assert rs.fetchall() == []


def test_fetchmany(db_connection, emp):
    rs = _result_set(db_connection)
    assert [r[0] for r in rs.fetchmany(2)] == [7369, 7499]
    assert [r[0] for r in rs.fetchmany(2)] == [7521, 7566]
    assert [r[0] for r in rs.fetchmany(2)] == [7654]
    assert rs.fetchmany(2) == []


def test_fetchmany_default_size(db_connection, emp):
    rs = _result_set(db_connection, arraysize=3)
    assert len(rs.fetchmany()) == 3


def test_fetchmany_negative_size(db_connection, emp):
    rs = _result_set(db_connection)
    with pytest.raises(ProgrammingError):
        rs.fetchmany(-1)


def test_fetchall_after_fetchone(db_connection, emp):
    rs = _result_set(db_connection)
    rs.fetchone()
    assert len(rs.fetchall()) == 4
    assert rs.rowcount == 5


def test_iteration(db_connection, emp):
    rs = _result_set(db_connection)
    assert [row.ENAME for row in rs] == ["SMITH", "ALLEN", "WARD", "JONES", "MARTIN"]
    assert list(rs) == []


@pytest.mark.parametrize("arraysize, fetches", [(1, 6), (2, 3), (5, 2), (100, 1)])
def test_arraysize_batches(db_connection, fake_oci, emp, arraysize, fetches):
    rs = _result_set(db_connection, arraysize=arraysize)
    assert len(rs.fetchall()) == 5
    assert fake_oci.calls.count("stmt_fetch") == fetches


def test_row_access(db_connection, emp):
    row = _result_set(db_connection).fetchone()
    assert isinstance(row, Row)
    assert len(row) == 5
    assert row[1] == "SMITH"
    assert row.EMPNO == 7369
    assert row.ename == "SMITH"
    assert row.HIREDATE == datetime.datetime(1980, 12, 17)
    assert isinstance(row.SAL, int)
    assert row.COMM is None
    assert row.values()[4] == Null(OracleType.NUMBER)
    assert row.values()[0] == Number(Decimal(7369))
    assert row == (7369, "SMITH", datetime.datetime(1980, 12, 17), 800, None)
    with pytest.raises(AttributeError):
        row.missing_column


def test_decimal_values(db_connection, emp):
    rows = _result_set(db_connection).fetchall()
    assert rows[2].SAL == Decimal("1250.5")
    assert isinstance(rows[2].SAL, Decimal)


def test_lowercase_names(db_connection, emp):
    get_settings().lowercase = True
    rs = _result_set(db_connection)
    row = rs.fetchone()
    assert row.empno == 7369
    assert rs.description[1][0] == "ename"


def test_empty_result(db_connection, fake_oci):
    fake_oci.add_query("select * from emp where 1 = 0", [Column("EMPNO", SQLT.NUM, 22, 4)], [])
    rs = _result_set(db_connection, "select * from emp where 1 = 0")
    assert rs.fetchone() is None
    assert rs.exhausted
    assert rs.rowcount == 0


def test_truncated_value(db_connection, fake_oci):
    fake_oci.add_query("select name from wide", [Column("NAME", SQLT.CHR, 1, char_size=1)], [("ABCDEFGHIJ",)])
    rs = _result_set(db_connection, "select name from wide")
    with pytest.raises(FetchError) as excinfo:
        rs.fetchone()
    assert excinfo.value.kind is ErrorKind.VALUE_TRUNCATED
    assert excinfo.value.code == 1406


def test_truncation_discards_batch(db_connection, fake_oci):
    fake_oci.add_query(
        "select name from wide",
        [Column("NAME", SQLT.CHR, 1, char_size=1)],
        [("A",), ("ABCDEFGHIJ",), ("C",)],
    )
    rs = _result_set(db_connection, "select name from wide")
    with pytest.raises(FetchError):
        rs.fetchone()
    assert rs.exhausted
    assert rs.fetchone() is None
    assert rs.fetchall() == []
    assert rs.rowcount == 0


def test_fetch_failure(db_connection, fake_oci, emp):
    rs = _result_set(db_connection)
    fake_oci.inject("stmt_fetch", 1013, "user requested cancel of current operation")
    with pytest.raises(FetchError) as excinfo:
        rs.fetchone()
    assert excinfo.value.kind is ErrorKind.CANCELLED
    assert not db_connection.invalidated


def test_unsupported_column_type(db_connection, fake_oci):
    fake_oci.add_query("select address from customers", [Column("ADDRESS", 108)], [])
    stmt = db_connection.prepare("select address from customers")
    with pytest.raises(NotSupportedError):
        stmt.execute()
    assert fake_oci.live("descriptor") == 0
    stmt.close()


def test_timestamp_column(db_connection, fake_oci):
    value = datetime.datetime(2024, 1, 15, 9, 45, 0, 123456)
    fake_oci.add_query(
        "select created from events",
        [Column("CREATED", SQLT.TIMESTAMP, 11, scale=6)],
        [(value,), (None,)],
    )
    rs = _result_set(db_connection, "select created from events")
    first, second = rs.fetchall()
    assert first.CREATED == value
    assert first.values()[0].precision == 6
    assert isinstance(first.values()[0], Timestamp)
    assert second.CREATED is None
    # Exhausting the result set frees the define descriptors
    assert fake_oci.live("descriptor") == 0


def test_interval_column(db_connection, fake_oci):
    fake_oci.add_query(
        "select duration from jobs",
        [Column("DURATION", SQLT.INTERVAL_DS, 11, precision=2, scale=6)],
        [(datetime.timedelta(days=2, hours=3),)],
    )
    row = _result_set(db_connection, "select duration from jobs").fetchone()
    assert row.DURATION == datetime.timedelta(days=2, hours=3)
    assert row.values()[0].day_precision == 2


def test_long_column(db_connection, fake_oci):
    text = "".join(chr(ord("a") + i % 26) for i in range(200000))
    fake_oci.add_query(
        "select id, body from documents",
        [Column("ID", SQLT.NUM, 22, precision=4), Column("BODY", SQLT.LNG)],
        [(1, text), (2, None), (3, "short")],
    )
    rs = _result_set(db_connection, "select id, body from documents")
    rows = rs.fetchall()
    assert [r.ID for r in rows] == [1, 2, 3]
    assert rows[0].BODY == text
    assert rows[1].BODY is None
    assert rows[2].BODY == "short"
    assert rs.rowcount == 3


def test_long_column_small_pieces(db_connection, fake_oci):
    get_settings().long_piece_size = 7
    fake_oci.add_query("select body from notes", [Column("BODY", SQLT.LNG)], [("a" * 50,)])
    row = _result_set(db_connection, "select body from notes").fetchone()
    assert row.BODY == "a" * 50


def test_long_raw_column(db_connection, fake_oci):
    data = bytes(range(256)) * 300
    fake_oci.add_query("select image from pictures", [Column("IMAGE", SQLT.LBI)], [(data,)])
    row = _result_set(db_connection, "select image from pictures").fetchone()
    assert row.IMAGE == data


def test_result_set_after_connection_close(db_connection, emp):
    rs = _result_set(db_connection)
    db_connection.close()
    assert rs.exhausted
    with pytest.raises(InterfaceError):
        rs.fetchone()
