"""
Static data for the step definitions — packages, templates, repos.
"""

from __future__ import annotations

BASE_PACKAGES = ("sudo", "curl", "git", "build-essential", "wget")

REPO_PREREQUISITES = ("ca-certificates", "debian-archive-keyring")

APT_SOURCES_DEB822 = "/etc/apt/sources.list.d/debian.sources"
APT_SOURCES_LEGACY = "/etc/apt/sources.list"
EXTRA_COMPONENTS = "contrib non-free non-free-firmware"

DATABASE_PACKAGES = ("mariadb-server", "mariadb-client", "libmariadb-dev")
DATABASE_SERVICE = "mariadb"
DATABASE_CONFIG = "/etc/mysql/mariadb.conf.d/z_frappe.cnf"
DATABASE_CONFIG_CONTENT = """\
[server]
innodb_file_per_table = 1

[mysqld]
character-set-client-handshake = FALSE
character-set-server = utf8mb4
collation-server = utf8mb4_unicode_ci

[mysql]
default-character-set = utf8mb4
"""

# Statements of mysql_secure_installation we need, fed through stdin
DATABASE_HARDENING_SQL = """\
DELETE FROM mysql.user WHERE User='';
DROP DATABASE IF EXISTS test;
DELETE FROM mysql.db WHERE Db='test' OR Db='test\\_%';
FLUSH PRIVILEGES;
"""

NODE_VERSIONS = ("22", "24")
NODESOURCE_SETUP_URL = "https://deb.nodesource.com/setup_{version}.x"

PYTHON_PACKAGES = ("python3-dev", "python3-venv", "python3-pip", "python3-setuptools")
CACHE_PACKAGE = "redis-server"
CACHE_SERVICE = "redis-server"
SUPPORT_PACKAGES = ("xvfb", "libfontconfig1", "libssl-dev", "libcrypto++-dev", "nginx")
PDF_PACKAGE = "wkhtmltopdf"
BACKPORTS_RELEASE = "trixie-backports"

BENCH_PACKAGE = "frappe-bench"
LOCAL_BIN_EXPORT = 'export PATH="$PATH:$HOME/.local/bin"'
# pip --user install location, relative to the account home
BENCH_EXECUTABLE = ".local/bin/bench"
NPM_REGISTRY = "https://registry.npmjs.org/"

SUDOERS_DIR = "/etc/sudoers.d"
SUDOERS_LIMITED = "{account} ALL=(ALL) NOPASSWD: /usr/bin/systemctl, /usr/sbin/nginx, /usr/bin/supervisorctl\n"
SUDOERS_FULL = "{account} ALL=(ALL) NOPASSWD: ALL\n"
SUDOERS_MODE = 0o440

# Optional Frappe apps: name → (repository, branch)
APP_SOURCES = {
    "hrms": ("frappe/hrms", "version-15"),
    "payments": ("frappe/payments", "version-15"),
    "webshop": ("frappe/webshop", "version-15"),
    "wiki": ("frappe/wiki", "version-15"),
    "helpdesk": ("frappe/helpdesk", "version-15"),
    "lms": ("frappe/lms", "version-15"),
    "builder": ("frappe/builder", "main"),
    "print_designer": ("frappe/print_designer", "main"),
}

SUPERVISOR_CONFIG = "/etc/supervisor/conf.d/frappe-bench.conf"
NGINX_CONFIG = "/etc/nginx/conf.d/frappe-bench.conf"

FIREWALL_PACKAGE = "ufw"
FIREWALL_RULES = ("Nginx Full", "ssh")
