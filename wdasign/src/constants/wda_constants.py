from pathlib import Path

# Provisioning profile locations, keyed by the installed Xcode generation
LEGACY_PROFILES_DIR = Path("Library/MobileDevice/Provisioning Profiles")
USERDATA_PROFILES_DIR = Path("Library/Developer/Xcode/UserData/Provisioning Profiles")
LEGACY_XCODE_MAX_VERSION = 15

PROFILE_SUFFIX = ".mobileprovision"

# WebDriverAgent project layout
WDA_PROJECT_FILE = "WebDriverAgent.xcodeproj"
WDA_SCHEME = "WebDriverAgentRunner"
WDA_DERIVED_DATA = "appium_wda_ios"
WDA_DESTINATION = "generic/platform=iOS"
WDA_PRODUCTS_SUBPATH = Path("Build/Products/Debug-iphoneos")
WDA_APP_NAME = "WebDriverAgentRunner-Runner.app"
DEFAULT_PROJECT_SEARCH_ROOT = Path.home() / ".appium"

# IPA layout
PAYLOAD_DIR_NAME = "Payload"
IPA_NAME = "Payload.ipa"
RESIGNED_IPA_NAME = "Payload-resigned.ipa"
FRAMEWORKS_DIR_NAME = "Frameworks"

# Timeouts in seconds
DEFAULT_BUILD_TIMEOUT = 1800
DEFAULT_SIGN_TIMEOUT = 600
VERSION_QUERY_TIMEOUT = 60

DEFAULT_SIGN_COMMAND = "applesign"
