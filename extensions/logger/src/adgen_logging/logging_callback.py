import logging
import os

from adgen import callbacks, llops, recorder, templates

LOG_LEVEL_ENV_SETTER = "ADGEN_LOGLEVEL"


def setup_logger() -> logging.Logger:
    logger = logging.getLogger(__name__)
    logger.setLevel(logging._nameToLevel[os.environ.get(LOG_LEVEL_ENV_SETTER, "INFO")])
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-10s%(funcName)s: - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(console_handler)
    return logger


default_logger = setup_logger()


class AdgenLogger(callbacks.OnOperationRecordedCallback, callbacks.OnStageChangeCallback):
    def __init__(self, logger: logging.Logger = default_logger) -> None:
        super().__init__()
        self._logger = logger

    def on_operation_recorded(self, operation: llops.Operation) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.log(
                logging.DEBUG,
                "%(var)-6s = %(op)-8s(%(deps)-16s) → %(kind)s",
                {
                    "var": templates.var_name(operation.id),
                    "op": operation.op.name,
                    "deps": ", ".join(map(templates.var_name, operation.deps)),
                    "kind": operation.kind,
                },
            )

    def on_stage_change(self, rec: recorder.Recorder, stage: recorder.Stage) -> None:
        match stage:
            case recorder.Stage.RECORDING:
                self._logger.debug("recording with %s", rec.dialect)
            case recorder.Stage.RECORDED:
                self._logger.info("recorded %d operations", len(rec.tape))
            case recorder.Stage.DIFFERENTIATED:
                self._logger.info("emitted %d backward statements", len(rec.buffer.backward))

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(verbosity={self._logger.level})"
