"""Centralized user-facing text for VaultAI."""

from __future__ import annotations

class Styles:
    ERROR = "red"
    WARNING = "yellow"
    SUCCESS = "green"
    INFO = "dim"
    TITLE = "bold cyan"
    TABLE_HEADER = "bold magenta"


class Messages:
    APP_HELP = "VaultAI – sync a notes vault to a Gemini File Search store and ask it questions."
    HELP_SYNC_SCOPE = "Only sync notes whose path starts with this prefix (default: entire vault)."
    HELP_VAULT_PATH = "Root directory of the notes vault (overrides the configured vault)."
    HELP_ASK_TEXT = "Question to send to the model."
    HELP_ASK_MODE = "Query mode: plain (chat), retrieval (search the synced vault) or web (Google Search)."
    HELP_ASK_FILTER = "Metadata filter passed to the File Search tool (retrieval mode only)."
    HELP_DELETE_YES = "Delete without asking for confirmation."
    HELP_NOTE = "Vault-relative path of the note."
    HELP_LANGUAGE = "Target language for the translation."
    HELP_VERBOSE = "Enable debug logging."
    HELP_SET_API_KEY = "Persist an API key in ~/.vaultai/config.json."
    HELP_CLEAR_API_KEY = "Remove the stored API key."
    HELP_SET_MODEL = "Set the Gemini model used for chat and retrieval."
    HELP_SET_VAULT = "Set the default vault directory."
    HELP_SET_STORE_NAME = "Set the display name used when creating the File Search store."
    HELP_SHOW_CONFIG = "Show current configuration."

    ERROR_API_KEY_MISSING = (
        "Gemini API key is missing or still set to the placeholder. "
        "Configure it via `vaultai config --set-api-key <token>` or an environment variable."
    )
    ERROR_API_KEY_INVALID = (
        "Gemini API key is invalid or expired. Verify the stored token and try again."
    )
    ERROR_GENAI_PREFIX = "Gemini API request failed: "
    ERROR_EMPTY_QUERY = "Query text must not be empty."
    ERROR_NOT_SYNCED = (
        "No File Search store is active. Run `vaultai sync` before asking in retrieval mode."
    )
    ERROR_RATE_LIMITED = "Rate limit reached. Please wait a moment before trying again."
    ERROR_COOLDOWN = "Please wait a moment before sending another message."
    ERROR_BACKEND_UNAVAILABLE = "Gemini is temporarily unavailable. Please try again later."
    ERROR_CONTENT_BLOCKED = "The request was blocked by Gemini's safety filters."
    ERROR_INVALID_REQUEST = "Gemini rejected the request: {reason}"
    ERROR_UNKNOWN = "Failed to get response from Gemini."
    ERROR_UPLOAD_TIMEOUT = "Upload of {name} did not finish after {attempts} status checks."
    ERROR_UPLOAD_REJECTED = "Upload of {name} was rejected: {reason}"
    ERROR_STORE_CREATE = "Failed to initialize File Search store: {reason}"
    ERROR_STORE_DELETE = "Failed to delete File Search store: {reason}"
    ERROR_STORE_LIST = "Failed to list File Search stores: {reason}"
    ERROR_STORE_NONE = "No File Search store is active."
    ERROR_STORE_BUSY = "The File Search store is currently being {state}; try again shortly."
    ERROR_SYNC_RUNNING = "A vault sync is already running; wait for it to finish."
    ERROR_VAULT_MISSING = (
        "No vault directory configured. Pass --vault or run `vaultai config --set-vault <path>`."
    )
    ERROR_NOTE_MISSING = "Note not found in vault: {path}"
    ERROR_CONFIG_JSON_INVALID = "Config JSON must be an object."
    ERROR_CONFIG_VALUE_INVALID = "Config field '{field}' has an invalid value."

    INFO_SYNC_RUNNING = "Syncing notes under {path}..."
    INFO_SYNC_UPLOADING = "Uploading {name}"
    INFO_SYNC_UP_TO_DATE = "All files are already synced!"
    INFO_SYNC_SUMMARY = "Sync finished: {success} uploaded, {failed} failed, {skipped} unchanged."
    INFO_SYNC_CANCELLED = "Sync cancelled; already uploaded notes stay synced."
    INFO_STATS = "Tracked notes: {total}\nSynced: {synced}\nPending: {pending}\nStore: {store}"
    INFO_STORE_NONE = "none"
    INFO_STORES_EMPTY = "No File Search stores found."
    INFO_STORE_DELETED = "Deleted File Search store {name}; sync state cleared."
    INFO_DELETE_ABORTED = "Aborted."
    CONFIRM_DELETE_STORE = "Delete File Search store {name} and forget all sync state?"
    INFO_API_SAVED = "API key saved."
    INFO_API_CLEARED = "API key cleared."
    INFO_MODEL_SET = "Default model set to {value}."
    INFO_VAULT_SET = "Default vault set to {value}."
    INFO_STORE_NAME_SET = "Store display name set to {value}."
    INFO_CONFIG_SUMMARY = (
        "API key set: {api}\n"
        "Model: {model}\n"
        "Vault: {vault}\n"
        "Store display name: {store}\n"
        "Poll interval: {interval}s x {attempts}"
    )

    SOURCES_LABEL = "Sources ({count})"
    SOURCES_TAGS_LABEL = "Tags"
    SOURCES_COUNT_ONLY = "Answer grounded in {count} source{plural} from your vault."
    CONTEXT_TRUNCATED = "[Content truncated for length...]"

    PROMPT_SUMMARIZE = "Please summarize the following content:\n\n{content}"
    PROMPT_TRANSLATE = "Please translate the following content to {language}:\n\n{content}"
    PROMPT_ACTION_ITEMS = (
        "Please analyze the following content and list all action items and tasks:\n\n{content}"
    )

    TABLE_TITLE = "File Search stores"
    TABLE_HEADER_INDEX = "#"
    TABLE_HEADER_NAME = "Store"
    TABLE_HEADER_DISPLAY = "Display name"
    TABLE_HEADER_ACTIVE = "Active"
