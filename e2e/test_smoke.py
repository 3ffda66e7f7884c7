from schemas.instance import AuditInput
from timeseries.series import TimeSeries


def test_audit_input_schema_smoke() -> None:
    audit = AuditInput(
        application="billing-db",
        from_ts=1_700_000_000,
        step=60,
        instances=[{"name": "pg-0", "role": "primary", "postgres": {"up": [1, None, 1]}}],
    )
    assert audit.instances[0].postgres.up == [1.0, None, 1.0]
    assert audit.deployments == []


def test_timeseries_smoke() -> None:
    ts = TimeSeries(0, 15, [1.0, None])
    assert ts.last() == 1.0
    assert ts.to_ts == 30
