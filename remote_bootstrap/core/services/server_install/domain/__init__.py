"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from remote_bootstrap.core.services.server_install.domain.compat_policy import (  # noqa: F401
    UNKNOWN_VERSION,
    decide_strategy,
    missing_abi_tags,
    parse_abi_tags,
)
from remote_bootstrap.core.services.server_install.domain.output_parser import (  # noqa: F401
    extract_result_block,
    parse_install_output,
)
from remote_bootstrap.core.services.server_install.domain.quoting import (  # noqa: F401
    check_env_name,
    check_extension_id,
    check_folder_name,
    check_text,
    ps_double_quoted,
    ps_single_quoted,
    sh_double_quoted,
    sh_single_quote_wrap,
)
from remote_bootstrap.core.services.server_install.domain.url_template import (  # noqa: F401
    find_placeholders,
    resolve_download_url,
    validate_url_template,
)
from remote_bootstrap.core.services.server_install.domain.version_compare import (  # noqa: F401
    compare_versions,
    extract_version,
    parse_version,
)
