from datetime import timedelta

from slotwise.core.timezone import local_now, utc_now


def test_utc_now_is_aware():
    assert utc_now().utcoffset() == timedelta(0)


def test_local_now_is_naive_wall_clock():
    sao_paulo = local_now("America/Sao_Paulo")
    utc = utc_now().replace(tzinfo=None)
    assert sao_paulo.tzinfo is None
    # Brazil has no DST since 2019: UTC-3 all year
    assert abs((utc - sao_paulo) - timedelta(hours=3)) < timedelta(minutes=1)


def test_unknown_timezone_falls_back_to_utc():
    fallback = local_now("Mars/Olympus_Mons")
    assert abs(fallback - utc_now().replace(tzinfo=None)) < timedelta(minutes=1)
