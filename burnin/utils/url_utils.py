"""
URL Utils
=========
URL helpers for build artifacts, node hostnames and observability links.

Responsibilities:
    - Append path segments to a URL while keeping its query string
    - Derive the public and internal FQDNs of a burn-in host
    - Build the Grafana log viewer link (Loki datasource per network)
    - Build the four Grafana dashboard links stored in a run file
"""
import posixpath
from typing import Dict, Tuple
from urllib.parse import quote_plus, urlsplit, urlunsplit

from burnin.core import config

# Networks served by the testnet monitoring stack
_TESTNET_NETWORK = "westend"

_DASHBOARDS = {
    "substrate_service_tasks": "3LA6XNqZz/substrate-service-tasks",
    "substrate_networking": "vKVuiD9Zk/substrate-networking",
    "kademlia_and_authority_discovery": "NMSIHdDGz/kademlia-and-authority-discovery",
    "grandpa": "EzEZ60fMz/grandpa",
}


def add_paths_to_url(url: str, *paths: str) -> str:
    """
    'https://gitlab.example.com/foo/bar?spam=eggs' + 'more', 'path'
    -> 'https://gitlab.example.com/foo/bar/more/path?spam=eggs'
    """
    parts = urlsplit(url)
    segments = [p.strip("/") for p in (parts.path, *paths) if p.strip("/")]
    full_path = posixpath.normpath("/" + "/".join(segments))
    return urlunsplit((parts.scheme, parts.netloc, full_path, parts.query, ""))


def hostname_to_fqdns(hostname: str) -> Tuple[str, str]:
    """Return (public_fqdn, internal_fqdn) for a burn-in host."""
    subdomain_suffix = "testnet" if _TESTNET_NETWORK in hostname else "chains"
    return (
        f"{hostname}.foo-{subdomain_suffix}.{config.NODE_DOMAIN}",
        f"{hostname}-int.foo-{subdomain_suffix}.{config.NODE_DOMAIN}",
    )


def log_viewer_url(network: str, hostname: str) -> str:
    loki = "loki.foo-bar" if network == _TESTNET_NETWORK else "loki.foo-baz"
    query = '["now-1h","now","%s",{"expr":"{host=\\"%s\\"}"}]' % (loki, hostname)
    return f"{config.GRAFANA_URL}/explore?orgId=1&left={quote_plus(query)}"


def dashboard_urls(network: str, deployed_on: str, internal_fqdn: str) -> Dict[str, str]:
    dash_fmt = config.GRAFANA_URL + "/d/{uid}?orgId=1&refresh=1m&var-nodename={node}:9615"
    node = internal_fqdn

    # The testnet Prometheus scrapes nodes by plain hostname
    if network == _TESTNET_NETWORK:
        dash_fmt += "&var-data_source=prometheus"
        node = deployed_on

    return {name: dash_fmt.format(uid=uid, node=node) for name, uid in _DASHBOARDS.items()}
