"""ctypes declarations for the native libraries, generated from their C headers.

Struct layouts follow whisper.cpp 1.7.6 (``whisper.h``), libsndfile 1.2
(``sndfile.h``) and libsamplerate 0.2 (``samplerate.h``). The prebuilt archive
version configured in ``library.version`` must ship a matching ABI.
"""

from __future__ import annotations

import ctypes
from ctypes import (
    POINTER,
    Structure,
    c_bool,
    c_char_p,
    c_double,
    c_float,
    c_int,
    c_int64,
    c_long,
    c_size_t,
    c_void_p,
)

from whisper_bind.l1_entities.errors import LibraryBindError

WHISPER_CPP_ABI = '1.7.6'

# --- whisper.h ---

whisper_context_p = c_void_p
whisper_state_p = c_void_p
whisper_token = c_int

GGML_LOG_CALLBACK = ctypes.CFUNCTYPE(None, c_int, c_char_p, c_void_p)


class WhisperAheads(Structure):
    _fields_ = [
        ('n_heads', c_size_t),
        ('heads', c_void_p),
    ]


class WhisperContextParams(Structure):
    _fields_ = [
        ('use_gpu', c_bool),
        ('flash_attn', c_bool),
        ('gpu_device', c_int),
        ('dtw_token_timestamps', c_bool),
        ('dtw_aheads_preset', c_int),
        ('dtw_n_top', c_int),
        ('dtw_aheads', WhisperAheads),
        ('dtw_mem_size', c_size_t),
    ]


class _Greedy(Structure):
    _fields_ = [('best_of', c_int)]


class _BeamSearch(Structure):
    _fields_ = [
        ('beam_size', c_int),
        ('patience', c_float),
    ]


class WhisperVadParams(Structure):
    _fields_ = [
        ('threshold', c_float),
        ('min_speech_duration_ms', c_int),
        ('min_silence_duration_ms', c_int),
        ('max_speech_duration_s', c_float),
        ('speech_pad_ms', c_int),
        ('samples_overlap', c_float),
    ]


class WhisperFullParams(Structure):
    # callbacks are kept as opaque pointers: whisper-bind never installs them
    _fields_ = [
        ('strategy', c_int),
        ('n_threads', c_int),
        ('n_max_text_ctx', c_int),
        ('offset_ms', c_int),
        ('duration_ms', c_int),
        ('translate', c_bool),
        ('no_context', c_bool),
        ('no_timestamps', c_bool),
        ('single_segment', c_bool),
        ('print_special', c_bool),
        ('print_progress', c_bool),
        ('print_realtime', c_bool),
        ('print_timestamps', c_bool),
        ('token_timestamps', c_bool),
        ('thold_pt', c_float),
        ('thold_ptsum', c_float),
        ('max_len', c_int),
        ('split_on_word', c_bool),
        ('max_tokens', c_int),
        ('debug_mode', c_bool),
        ('audio_ctx', c_int),
        ('tdrz_enable', c_bool),
        ('suppress_regex', c_char_p),
        ('initial_prompt', c_char_p),
        ('prompt_tokens', POINTER(whisper_token)),
        ('prompt_n_tokens', c_int),
        ('language', c_char_p),
        ('detect_language', c_bool),
        ('suppress_blank', c_bool),
        ('suppress_nst', c_bool),
        ('temperature', c_float),
        ('max_initial_ts', c_float),
        ('length_penalty', c_float),
        ('temperature_inc', c_float),
        ('entropy_thold', c_float),
        ('logprob_thold', c_float),
        ('no_speech_thold', c_float),
        ('greedy', _Greedy),
        ('beam_search', _BeamSearch),
        ('new_segment_callback', c_void_p),
        ('new_segment_callback_user_data', c_void_p),
        ('progress_callback', c_void_p),
        ('progress_callback_user_data', c_void_p),
        ('encoder_begin_callback', c_void_p),
        ('encoder_begin_callback_user_data', c_void_p),
        ('abort_callback', c_void_p),
        ('abort_callback_user_data', c_void_p),
        ('logits_filter_callback', c_void_p),
        ('logits_filter_callback_user_data', c_void_p),
        ('grammar_rules', c_void_p),
        ('n_grammar_rules', c_size_t),
        ('i_start_rule', c_size_t),
        ('grammar_penalty', c_float),
        ('vad', c_bool),
        ('vad_model_path', c_char_p),
        ('vad_params', WhisperVadParams),
    ]


_c_float_p = POINTER(c_float)

WHISPER_SYMBOLS: dict[str, tuple[object, list]] = {
    'whisper_context_default_params': (WhisperContextParams, []),
    'whisper_init_from_file_with_params_no_state': (whisper_context_p, [c_char_p, WhisperContextParams]),
    'whisper_init_state': (whisper_state_p, [whisper_context_p]),
    'whisper_free': (None, [whisper_context_p]),
    'whisper_free_state': (None, [whisper_state_p]),
    'whisper_full_default_params': (WhisperFullParams, [c_int]),
    'whisper_full_with_state': (c_int, [whisper_context_p, whisper_state_p, WhisperFullParams, _c_float_p, c_int]),
    'whisper_full_n_segments_from_state': (c_int, [whisper_state_p]),
    'whisper_full_get_segment_t0_from_state': (c_int64, [whisper_state_p, c_int]),
    'whisper_full_get_segment_t1_from_state': (c_int64, [whisper_state_p, c_int]),
    'whisper_full_get_segment_text_from_state': (c_char_p, [whisper_state_p, c_int]),
    'whisper_full_lang_id_from_state': (c_int, [whisper_state_p]),
    'whisper_lang_id': (c_int, [c_char_p]),
    'whisper_lang_str': (c_char_p, [c_int]),
    'whisper_reset_timings': (None, [whisper_context_p]),
    'whisper_print_timings': (None, [whisper_context_p]),
    'whisper_print_system_info': (c_char_p, []),
    'whisper_log_set': (None, [GGML_LOG_CALLBACK, c_void_p]),
}

# --- sndfile.h ---

SFM_READ = 0x10


class SfInfo(Structure):
    _fields_ = [
        ('frames', c_int64),
        ('samplerate', c_int),
        ('channels', c_int),
        ('format', c_int),
        ('sections', c_int),
        ('seekable', c_int),
    ]


SNDFILE_SYMBOLS: dict[str, tuple[object, list]] = {
    'sf_open': (c_void_p, [c_char_p, c_int, POINTER(SfInfo)]),
    'sf_readf_float': (c_int64, [c_void_p, _c_float_p, c_int64]),
    'sf_close': (c_int, [c_void_p]),
    'sf_strerror': (c_char_p, [c_void_p]),
    'sf_version_string': (c_char_p, []),
}

# --- samplerate.h ---

SRC_SINC_BEST_QUALITY = 0
SRC_SINC_MEDIUM_QUALITY = 1
SRC_SINC_FASTEST = 2
SRC_LINEAR = 4


class SrcData(Structure):
    _fields_ = [
        ('data_in', _c_float_p),
        ('data_out', _c_float_p),
        ('input_frames', c_long),
        ('output_frames', c_long),
        ('input_frames_used', c_long),
        ('output_frames_gen', c_long),
        ('end_of_input', c_int),
        ('src_ratio', c_double),
    ]


SAMPLERATE_SYMBOLS: dict[str, tuple[object, list]] = {
    'src_simple': (c_int, [POINTER(SrcData), c_int, c_int]),
    'src_strerror': (c_char_p, [c_int]),
    'src_get_version': (c_char_p, []),
}

SYMBOL_TABLES: dict[str, dict[str, tuple[object, list]]] = {
    'whisper': WHISPER_SYMBOLS,
    'sndfile': SNDFILE_SYMBOLS,
    'samplerate': SAMPLERATE_SYMBOLS,
}


def apply_symbols(lib, symbols: dict[str, tuple[object, list]]):
    """Declare restype/argtypes for every symbol in *symbols* on *lib*.

    Raises:
        LibraryBindError: the library does not export one of the symbols.
    """
    for name, (restype, argtypes) in symbols.items():
        try:
            func = getattr(lib, name)
        except AttributeError as exc:
            raise LibraryBindError(f'Symbol {name} not found in {getattr(lib, "_name", lib)}') from exc
        func.restype = restype
        func.argtypes = argtypes
    return lib
