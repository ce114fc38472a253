from defectlens.orchestrator.contracts import EncodedImage, InspectionReport


class VisionAdapter:
    def analyze(self, image: EncodedImage) -> InspectionReport:
        """
        One request/response call. Returns a fully populated report or raises
        AnalysisServiceError / AnalysisParseError.
        """
        raise NotImplementedError

    def close(self):
        pass
