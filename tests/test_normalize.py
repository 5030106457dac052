from dns_posture.utils.normalize import canonicalize_host, is_valid_hostname, nameserver_set, sanitize_host_list, split_list


def test_canonicalize_is_idempotent_and_merges_variants():
    variants = ["NS1.Example.COM.", "ns1.example.com", " ns1.example.com. ", "Ns1.EXAMPLE.com"]
    canonical = {canonicalize_host(v) for v in variants}
    assert canonical == {"ns1.example.com"}
    for v in variants:
        once = canonicalize_host(v)
        assert canonicalize_host(once) == once


def test_hostname_validation():
    assert is_valid_hostname("ns1.example.com")
    assert not is_valid_hostname("localhost")
    assert not is_valid_hostname("bad..example.com")
    assert not is_valid_hostname("under_score.example.com")


def test_split_list_accepts_commas_and_whitespace():
    assert split_list("selector1, selector2\tgoogle") == ["selector1", "selector2", "google"]
    assert split_list(None) == []
    assert split_list("") == []


def test_nameserver_set_dedupes_and_sorts():
    assert nameserver_set(["NS2.example.com.", "ns1.example.com", "ns2.example.com", "junk"]) == [
        "ns1.example.com",
        "ns2.example.com",
    ]


def test_sanitize_host_list_splits_list_items():
    assert sanitize_host_list(["ns2.example.net,NS1.example.net."]) == ["ns1.example.net", "ns2.example.net"]
    assert sanitize_host_list("ns1.example.net ns1.example.net") == ["ns1.example.net"]
    assert sanitize_host_list(None) == []
